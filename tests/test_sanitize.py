from payform.sanitize import sanitize_email, sanitize_form, sanitize_numeric, sanitize_text


def test_sanitize_text_strips_markup_and_trims():
    assert sanitize_text('  <script>alert("x")</script> ') == "scriptalert(x)/script"
    assert sanitize_text("O'Brien") == "OBrien"


def test_sanitize_text_truncates_to_255():
    assert len(sanitize_text("a" * 300)) == 255


def test_sanitize_email_lowercases_and_truncates():
    assert sanitize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"
    assert len(sanitize_email("x" * 300 + "@example.com")) == 254


def test_sanitize_numeric_keeps_digits_dot_dash():
    assert sanitize_numeric("4111 1111 1111 1111") == "4111111111111111"
    assert sanitize_numeric("$1,234.50") == "1234.50"
    assert sanitize_numeric("12345-6789") == "12345-6789"
    assert sanitize_numeric("1" * 30) == "1" * 20


def test_sanitizers_accept_none():
    assert sanitize_text(None) == ""
    assert sanitize_email(None) == ""
    assert sanitize_numeric(None) == ""


def test_sanitize_form_uses_field_kind():
    form = sanitize_form(
        {
            "cardNumber": "4111-1111 1111 1111",
            "email": " A@B.CO ",
            "firstName": " <b>Ann</b> ",
            "postalCode": "12345 ",
        }
    )
    assert form["cardNumber"] == "4111-111111111111"
    assert form["email"] == "a@b.co"
    assert form["firstName"] == "bAnn/b"
    assert form["postalCode"] == "12345"
    assert form["message"] == ""
    assert form["city"] == ""
