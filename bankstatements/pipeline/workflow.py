"""
Cache-or-create-and-poll document workflow.

Some backends only materialize a statement file on request. The workflow asks
the backend whether a matching document already exists; only when it does not
is a new one created and polled until ready.
"""

from typing import Awaitable, Callable, Generic, Optional, TypeVar

from bankstatements.logger import pipeline_logger
from bankstatements.models import Document

from .polling import Poller, PollState

H = TypeVar("H")


class DocumentWorkflow(Generic[H]):
  """
  Args:
      find_existing: Returns a handle for an already generated document, or None
      create: Requests generation and returns the new job handle
      check_status: Reports PENDING, READY or FAILED for a job handle
      fetch: Downloads the document for a handle
      poller: Bounded poller used between create and fetch
  """

  def __init__(
    self,
    find_existing: Callable[[], Awaitable[Optional[H]]],
    create: Callable[[], Awaitable[H]],
    check_status: Callable[[H], Awaitable[PollState]],
    fetch: Callable[[H], Awaitable[Document]],
    poller: Poller,
  ):
    self.find_existing = find_existing
    self.create = create
    self.check_status = check_status
    self.fetch = fetch
    self.poller = poller
    self.reused = False

  async def resolve(self) -> Document:
    existing = await self.find_existing()
    if existing is not None:
      self.reused = True
      pipeline_logger.debug("Reusing previously generated document")
      return await self.fetch(existing)

    handle = await self.create()

    async def check(attempt: int) -> PollState:
      return await self.check_status(handle)

    await self.poller.wait_until_ready(check)
    document = await self.fetch(handle)
    self.poller.mark_fetched()
    return document
