import pytest
from lxml import etree

from docfill.markup_replacer import (
    MarkupIntegrityError,
    MarkupSafeReplacer,
    check_well_formed,
    replace_in_markup,
    strip_trailing_empty_paragraphs,
)
from docfill.markup_text import visible_text
from docfill.models import ResolvedValues
from docfill.placeholder_scanner import scan_placeholders


def run(text, bold=False):
    props = "<w:rPr><w:b/></w:rPr>" if bold else ""
    return f'<w:r>{props}<w:t xml:space="preserve">{text}</w:t></w:r>'


def para(*runs):
    return "<w:p>" + "".join(runs) + "</w:p>"


def fill(markup, answers, **kwargs):
    text = visible_text(markup)
    resolved = ResolvedValues.from_answers(scan_placeholders(text), answers)
    return MarkupSafeReplacer().replace(markup.encode("utf-8"), resolved, **kwargs)


def test_token_split_across_three_runs(make_markup):
    markup = make_markup([para(run("Dear [Com"), run("pany Na", bold=True), run("me],"))])
    result = fill(markup, {"Company Name": "Acme"})

    output = result.markup.decode("utf-8")
    assert visible_text(output) == "Dear Acme,\n"
    assert "<w:b/>" in output
    assert output.count("<w:r>") == 3
    assert result.substitutions == 1
    assert result.filled_keys == {"Company Name"}
    etree.fromstring(result.markup)


def test_values_are_escaped(make_markup):
    markup = make_markup([para(run("Made by [Company Name]."))])
    result = fill(markup, {"Company Name": "Smith & Sons <LLC>"})

    output = result.markup.decode("utf-8")
    assert "Smith &amp; Sons &lt;LLC&gt;" in output
    assert visible_text(output) == "Made by Smith & Sons <LLC>.\n"


def test_currency_blanks_get_their_own_values(make_markup):
    markup = make_markup([
        para(run("The purchase price is $[_____].")),
        para(run("x" * 150)),
        para(run("The valuation cap is $[_____].")),
    ])
    result = fill(markup, {"Purchase Amount": "100k", "Post-Money Valuation Cap": "5 million"})

    text = visible_text(result.markup.decode("utf-8"))
    assert "The purchase price is $100,000." in text
    assert "The valuation cap is $5,000,000." in text


def test_single_curly_inside_double_curly_is_not_a_second_site(make_markup):
    markup = make_markup([para(run("Dear {{Name}}, signed {Name}."))])
    result = fill(markup, {"Name": "Ann"})

    assert visible_text(result.markup.decode("utf-8")) == "Dear Ann, signed Ann.\n"
    assert result.substitutions == 2


def test_shared_tokens_can_be_left_alone(make_markup):
    body = make_markup([
        para(run("[Company Name] sets the purchase price at $[_____].")),
        para(run("x" * 150)),
        para(run("The valuation cap is $[_____].")),
    ])
    resolved = ResolvedValues.from_answers(
        scan_placeholders(visible_text(body)),
        {"Company Name": "Acme", "Purchase Amount": "100k", "Post-Money Valuation Cap": "5 million"},
    )
    header = make_markup([para(run("[Company Name] owes $[_____]"))])

    result = MarkupSafeReplacer().replace(
        header.encode("utf-8"), resolved, include_labels=False, strip_trailing=False, shared_tokens=False
    )
    assert visible_text(result.markup.decode("utf-8")) == "Acme owes $[_____]\n"
    assert result.filled_keys == {"Company Name"}


def test_labels_are_filled_by_party(make_markup):
    markup = make_markup([
        para(run("COMPANY:")),
        para(run("Email:")),
        para(run("INVESTOR:")),
        para(run("Email:")),
    ])
    result = fill(markup, {"Company Email": "a@acme.test", "Investor Email": "b@fund.test"})

    assert visible_text(result.markup.decode("utf-8")) == (
        "COMPANY:\nEmail: a@acme.test\nINVESTOR:\nEmail: b@fund.test\n"
    )
    assert result.filled_keys == {"Company Email", "Investor Email"}


def test_label_value_gets_preserved_space(make_markup):
    markup = make_markup([
        para(run("COMPANY:")),
        "<w:p><w:r><w:t>Address:</w:t></w:r></w:p>",
    ])
    result = fill(markup, {"Company Address": "1 Main St"})

    output = result.markup.decode("utf-8")
    assert '<w:t xml:space="preserve">Address: 1 Main St</w:t>' in output


def test_labels_are_skipped_when_disabled(make_markup):
    markup = make_markup([para(run("COMPANY:")), para(run("Email:"))])
    result = fill(markup, {"Company Email": "a@acme.test"}, include_labels=False)
    assert visible_text(result.markup.decode("utf-8")) == "COMPANY:\nEmail:\n"
    assert result.substitutions == 0


def test_unmatched_values_are_reported(make_markup):
    markup = make_markup([para(run("[Company Name] and [Investor Name]"))])
    text = visible_text(markup)
    resolved = ResolvedValues.from_answers(scan_placeholders(text), {"Company Name": "Acme"})
    other = make_markup([para(run("[Investor Name] only"))])

    result = MarkupSafeReplacer().replace(other.encode("utf-8"), resolved)
    assert result.substitutions == 0
    assert result.skipped == ["Company Name"]


def test_trailing_empty_paragraphs_are_removed(make_markup):
    markup = make_markup([
        para(run("Hello [Name]")),
        "<w:p/>",
        para(run("   ")),
        '<w:p><w:pPr><w:jc w:val="left"/></w:pPr></w:p>',
    ])
    result = fill(markup, {"Name": "World"})

    output = result.markup.decode("utf-8")
    assert visible_text(output) == "Hello World\n"
    assert result.paragraphs_removed == 3
    assert "<w:sectPr>" in output
    etree.fromstring(result.markup)


def test_trailing_paragraph_after_table_is_kept(make_markup):
    table = "<w:tbl><w:tr><w:tc>" + para(run("cell")) + "</w:tc></w:tr></w:tbl>"
    markup = make_markup([table, "<w:p/>"])
    output, removed = strip_trailing_empty_paragraphs(markup)
    assert removed == 0
    assert output == markup


def test_trailing_drawing_paragraph_is_kept(make_markup):
    markup = make_markup([para(run("Text")), "<w:p><w:r><w:drawing/></w:r></w:p>"])
    assert strip_trailing_empty_paragraphs(markup)[1] == 0


def test_self_closing_section_properties(make_markup):
    markup = make_markup([para(run("Text")), "<w:p/>"]).replace(
        '<w:sectPr><w:pgSz w:w="12240" w:h="15840"/></w:sectPr>', "<w:sectPr/>"
    )
    output, removed = strip_trailing_empty_paragraphs(markup)
    assert removed == 1
    assert output.endswith("<w:sectPr/></w:body></w:document>")


def test_no_body_means_nothing_to_strip():
    header = "<w:hdr><w:p/></w:hdr>"
    assert strip_trailing_empty_paragraphs(header) == (header, 0)


def test_check_well_formed_rejects_broken_markup():
    with pytest.raises(MarkupIntegrityError):
        check_well_formed(b"<w:p><w:r></w:p>")


def test_replace_in_markup_convenience(make_markup):
    markup = make_markup([para(run("{{Client}}"))])
    resolved = ResolvedValues.from_answers(scan_placeholders(visible_text(markup)), {"Client": "Globex"})
    assert visible_text(replace_in_markup(markup.encode("utf-8"), resolved).decode("utf-8")) == "Globex\n"
