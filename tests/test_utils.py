import base64

from wingman.utils import safe_json_loads, split_data_url


def test_safe_json_loads_ignores_surrounding_text():
    assert safe_json_loads('```json\n{"inappropriate": false}\n```') == {"inappropriate": False}


def test_safe_json_loads_returns_none_for_garbage():
    assert safe_json_loads("no braces here") is None
    assert safe_json_loads("{broken: json}") is None
    assert safe_json_loads("") is None


def test_split_data_url_tolerates_line_breaks():
    encoded = base64.b64encode(b"hello image").decode("ascii")
    wrapped = encoded[:6] + "\n" + encoded[6:]
    assert split_data_url(f"data:image/webp;base64,{wrapped}") == ("image/webp", b"hello image")


def test_split_data_url_defaults_mime_type():
    encoded = base64.b64encode(b"bytes").decode("ascii")
    assert split_data_url(f"data:;base64,{encoded}") == ("application/octet-stream", b"bytes")
