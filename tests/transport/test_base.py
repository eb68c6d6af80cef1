import json

from bankstatements.transport import FetchRequest, FetchResponse


class TestFetchRequest:
  def test_full_url_without_params(self):
    assert FetchRequest("https://bank.example/api").full_url == "https://bank.example/api"

  def test_full_url_appends_params(self):
    request = FetchRequest("https://bank.example/api?x=1", params={"a": "b c"})

    assert request.full_url == "https://bank.example/api?x=1&a=b+c"

  def test_json_post(self):
    request = FetchRequest.json_post(
      "https://bank.example/api", {"a": 1}, headers={"x-csrf-token": "t"}, params={"p": "1"}
    )

    assert request.method == "POST"
    assert request.headers == {"content-type": "application/json", "x-csrf-token": "t"}
    assert json.loads(request.body) == {"a": 1}
    assert request.full_url.endswith("?p=1")


class TestFetchResponse:
  def test_headers_are_case_insensitive(self):
    response = FetchResponse(200, headers={"Content-Type": "application/PDF; charset=binary"})

    assert response.header("content-type").startswith("application/PDF")
    assert response.content_type == "application/pdf"

  def test_ok_range(self):
    assert FetchResponse(204).ok
    assert not FetchResponse(302).ok
    assert not FetchResponse(404).ok

  def test_json_body(self):
    assert FetchResponse(200, body=b'{"a": [1]}').json() == {"a": [1]}
