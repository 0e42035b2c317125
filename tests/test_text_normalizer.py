from planstream.services.text_normalizer import normalize_for_comparison, strip_decoration


def test_strip_decoration_removes_markup_and_keeps_link_labels() -> None:
    text = "**Read** the *intro* to `asyncio` on [the docs](https://docs.python.org)"

    assert strip_decoration(text) == "Read the intro to asyncio on the docs"


def test_strip_decoration_trims_surrounding_whitespace() -> None:
    assert strip_decoration("  plain task  ") == "plain task"


def test_normalize_lowercases_and_drops_punctuation() -> None:
    assert normalize_for_comparison("practice Guitar Chords!!") == "practice guitar chords"
    assert normalize_for_comparison("Set-up   the **repo**, then push.") == "set up the repo then push"


def test_normalize_empty_string() -> None:
    assert normalize_for_comparison("") == ""
