import base64

import pytest

from bankstatements.exceptions import EmptyDocumentError, InvalidContentTypeError, MalformedResponseError
from bankstatements.models import Document
from bankstatements.normalize import decode_bridge_body, looks_like_pdf, to_data_url, validate_document

from tests.conftest import PDF_BYTES


class TestValidateDocument:
  def test_declared_pdf(self):
    document = validate_document(PDF_BYTES, "application/pdf; charset=binary")

    assert document.content == PDF_BYTES
    assert document.content_type == "application/pdf"

  def test_zero_bytes(self):
    with pytest.raises(EmptyDocumentError):
      validate_document(b"", "application/pdf")

  def test_none_content(self):
    with pytest.raises(EmptyDocumentError):
      validate_document(None, "application/pdf")

  def test_html_rejected(self):
    with pytest.raises(InvalidContentTypeError):
      validate_document(b"<html>login</html>", "text/html")

  def test_octet_stream_sniffed(self):
    assert validate_document(PDF_BYTES, "application/octet-stream").size == len(PDF_BYTES)

  def test_octet_stream_not_pdf(self):
    with pytest.raises(InvalidContentTypeError):
      validate_document(b"PK\x03\x04zip", "application/octet-stream")

  def test_require_declared_pdf(self):
    with pytest.raises(InvalidContentTypeError):
      validate_document(PDF_BYTES, "application/octet-stream", require_declared_pdf=True)

  def test_min_size(self):
    with pytest.raises(EmptyDocumentError) as exc_info:
      validate_document(PDF_BYTES, "application/pdf", min_size=10240)

    assert "too small" in exc_info.value.message

  def test_looks_like_pdf_allows_leading_whitespace(self):
    assert looks_like_pdf(b"\r\n" + PDF_BYTES)
    assert not looks_like_pdf(b"<html>")


class TestDataUrls:
  def test_to_data_url(self):
    url = to_data_url(Document(content=PDF_BYTES))

    assert url.startswith("data:application/pdf;base64,")
    assert base64.b64decode(url.split(",", 1)[1]) == PDF_BYTES

  def test_decode_base64_body(self):
    body = "data:application/pdf;base64," + base64.b64encode(PDF_BYTES).decode()

    assert decode_bridge_body(body) == PDF_BYTES

  def test_decode_percent_encoded_body(self):
    assert decode_bridge_body("data:text/plain,hello%20world") == b"hello world"

  def test_plain_text_body(self):
    assert decode_bridge_body('{"a": 1}') == b'{"a": 1}'

  def test_data_url_without_payload(self):
    with pytest.raises(MalformedResponseError):
      decode_bridge_body("data:application/pdf;base64")
