# field_prompts.py - Rule-Based Field Questions
# The question asked for each placeholder key when no language model is involved

from typing import List, Tuple

from docfill.models import PlaceholderDescriptor

# (required words in the lower-cased key, question); first match wins
QUESTION_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("company", "name", "field"), "What is the Company Signatory's Name?"),
    (("company", "title"), "What is the Company Signatory's Title?"),
    (("company", "address"), "Please provide the Company Address."),
    (("company", "email"), "Please provide the Company Email."),
    (("investor", "title"), "What is the Investor's Title (if any)?"),
    (("investor", "address"), "What is the Investor's Address?"),
    (("investor", "email"), "What is the Investor's Email?"),
    (("investor",), "What is the Investor's Name?"),
    (("company",), "What is the Company Name?"),
    (("valuation",), "What is the Post-Money Valuation Cap?"),
    (("cap",), "What is the Post-Money Valuation Cap?"),
    (("purchase",), "What is the Purchase Amount (in USD)?"),
    (("amount",), "What is the Purchase Amount (in USD)?"),
    (("date",), "On what Date was the SAFE executed?"),
    (("incorporation",), "What is the State of Incorporation for the company?"),
    (("governing",), "Which State's laws will govern this agreement?"),
    (("law",), "Which State's laws will govern this agreement?"),
    (("jurisdiction",), "Which State's laws will govern this agreement?"),
]


def question_for(descriptor: PlaceholderDescriptor) -> str:
    """Question the conversation layer asks to fill `descriptor`."""
    name = descriptor.key
    if name == "COMPANY":
        return "What is the Company Name (for signature block)?"
    lowered = name.lower()
    for words, question in QUESTION_RULES:
        if all(word in lowered for word in words):
            return question
    return f'I found a placeholder: "{name}". What value should I use for this?'
