from docfill.patterns import (
    PlaceholderKind,
    find_currency_blanks,
    find_labels,
    find_literal_tokens,
    is_blank_name,
    label_name,
    normalize_key,
)


def literal_tokens(text):
    return [(spec.kind, match.token) for spec, match in find_literal_tokens(text)]


def test_each_delimiter_syntax_is_recognised():
    text = "[Square] {Curly} {{Double}} <<Angle>>"
    assert literal_tokens(text) == [
        (PlaceholderKind.SQUARE, "[Square]"),
        (PlaceholderKind.CURLY, "{Curly}"),
        (PlaceholderKind.DOUBLE_CURLY, "{{Double}}"),
        (PlaceholderKind.ANGLE, "<<Angle>>"),
    ]


def test_double_curly_is_not_also_reported_as_single_curly():
    assert literal_tokens("Hello {{Name}} and {Other}") == [
        (PlaceholderKind.DOUBLE_CURLY, "{{Name}}"),
        (PlaceholderKind.CURLY, "{Other}"),
    ]


def test_blank_names_are_skipped():
    assert literal_tokens("Sign here: [________] or [   ]") == []


def test_currency_blank_inner_brackets_are_not_a_square_token():
    text = "Amount: $[_____]"
    assert literal_tokens(text) == []
    blanks = find_currency_blanks(text)
    assert [b.token for b in blanks] == ["$[_____]"]
    assert blanks[0].start == text.index("$")


def test_currency_blank_allows_inner_spaces():
    assert [b.token for b in find_currency_blanks("$[ ____ ]")] == ["$[ ____ ]"]


def test_delimiters_do_not_span_lines():
    assert literal_tokens("[Company\nName]") == []


def test_labels_only_match_at_line_end():
    text = "Address:\nEmail: someone@example.com\nTITLE:   \nName: [name]\n"
    labels = find_labels(text)
    assert [label.token for label in labels] == ["Address:", "TITLE:"]
    assert labels[1].start == text.index("TITLE:")
    assert label_name(labels[1].name) == "Title"


def test_labels_need_a_word_boundary():
    assert find_labels("Username:\n") == []


def test_normalize_key_collapses_whitespace():
    assert normalize_key("  Company   Name ") == "Company Name"


def test_is_blank_name():
    assert is_blank_name("____")
    assert is_blank_name(" _ _ ")
    assert not is_blank_name("Name_1")
