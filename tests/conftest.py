import json

import pytest


def make_entry(url, method="GET", post_text=None, headers=None, cookies=None):
    request = {"url": url, "method": method}
    if post_text is not None:
        request["postData"] = {"mimeType": "application/x-www-form-urlencoded", "text": post_text}
    if headers is not None:
        request["headers"] = [{"name": n, "value": v} for n, v in headers]
    if cookies is not None:
        request["cookies"] = [{"name": n, "value": v} for n, v in cookies]
    return {"request": request, "response": {"status": 200}}


def make_har(entries):
    return json.dumps({"log": {"version": "1.2", "entries": entries}})


def prop(elem, name):
    """Text of the direct child property called ``name``."""
    found = elem.xpath("*[@name=$name]", name=name)
    assert found, f"no property {name!r}"
    return found[0].text or ""


@pytest.fixture
def example_entry():
    return make_entry(
        "http://example.com:8080/api",
        method="POST",
        post_text="a=1",
        headers=[("X-Test", "v")],
        cookies=[("session", "abc")],
    )


@pytest.fixture
def write_har(tmp_path):
    def _write(entries=None, text=None, name="capture.har"):
        path = tmp_path / name
        path.write_text(text if text is not None else make_har(entries), encoding="utf-8")
        return str(path)
    return _write
