"""
Fetch bridge transport.

Some institutions serve their statement APIs from a sibling domain that the
page context cannot reach. Those requests go through a privileged component
that performs the fetch and replies with a serialized response. The wire
format is:

    request  {"action": "requestFetch", "url": ..., "options": {...}}
    success  {"ok": ..., "status": ..., "statusText": ..., "headers": {...}, "body": ...}
    failure  {"error": "..."}

Binary bodies (PDF, octet-stream) arrive as ``data:`` URLs.
"""

from typing import Any, Awaitable, Callable, Dict

from bankstatements.exceptions import BankRequestError
from bankstatements.normalize.documents import decode_bridge_body

from .base import FetchRequest, FetchResponse, Transport

MessageSender = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


def build_fetch_message(request: FetchRequest) -> Dict[str, Any]:
  """Serialize a request into a ``requestFetch`` bridge message."""
  options: Dict[str, Any] = {"method": request.method, "credentials": "include"}
  if request.headers:
    options["headers"] = dict(request.headers)
  if request.body is not None:
    body = request.body
    options["body"] = body.decode("utf-8") if isinstance(body, bytes) else body
  return {"action": "requestFetch", "url": request.full_url, "options": options}


def parse_fetch_reply(reply: Dict[str, Any], url: str = "") -> FetchResponse:
  """
  Convert a bridge reply into a ``FetchResponse``.

  Raises:
      BankRequestError: the bridge reported an error or the reply is unusable
  """
  if not isinstance(reply, dict):
    raise BankRequestError("Fetch bridge returned no reply", url=url)
  if "error" in reply:
    raise BankRequestError(f"Fetch bridge error: {reply['error']}", url=url)
  if "status" not in reply:
    raise BankRequestError("Fetch bridge reply has no status", url=url)

  headers = reply.get("headers") or {}
  body = reply.get("body") or ""
  if isinstance(body, str):
    content = decode_bridge_body(body)
  else:
    content = bytes(body)

  return FetchResponse(
    status=int(reply["status"]),
    status_text=reply.get("statusText", ""),
    headers=headers,
    body=content,
    url=url,
  )


class BridgeTransport(Transport):
  """Transport that forwards every request to a ``requestFetch`` message sender."""

  def __init__(self, send_message: MessageSender):
    self.send_message = send_message

  async def fetch(self, request: FetchRequest) -> FetchResponse:
    message = build_fetch_message(request)
    reply = await self.send_message(message)
    return parse_fetch_reply(reply, url=request.url)
