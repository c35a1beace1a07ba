from outreach_studio.campaigns.tokens import (
    PREVIEW_PERSONAS,
    Recipient,
    TokenContext,
    find_persona,
    render_tokens,
)


def _context():
    return TokenContext.for_recipient(
        Recipient("John Smith", "Memorial Healthcare"), "HCA Healthcare", "Sarah Johnson"
    )


def test_render_all_recognized_tokens():
    text = "Hi {{First Name}} at {{Current Company}}, {{Company Name}} is hiring. - {{Your Name}}"

    rendered = render_tokens(text, _context())

    assert rendered == "Hi John at Memorial Healthcare, HCA Healthcare is hiring. - Sarah Johnson"


def test_render_replaces_every_occurrence():
    assert render_tokens("{{First Name}} {{First Name}}", _context()) == "John John"


def test_unrecognized_tokens_pass_through():
    text = "Hi {{first name}} {{Last Name}} {First Name}"

    assert render_tokens(text, _context()) == text


def test_first_name_is_first_word():
    assert Recipient("Mary Ann Jones", "X").first_name == "Mary"
    assert Recipient("", "X").first_name == ""


def test_find_persona_defaults_to_first():
    assert find_persona("Emily Davis").company == "Cleveland Clinic"
    assert find_persona("Nobody") == PREVIEW_PERSONAS[0]
