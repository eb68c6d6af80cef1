"""
Bounded generate-then-poll.

A poll runs as a small state machine:

    PENDING -> READY -> FETCHED
    PENDING -> TIMED_OUT
    PENDING -> FAILED

The interval is fixed and the attempt count has a hard ceiling. The sleep
function is injected so tests drive the machine without real delays.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from bankstatements.exceptions import DownloadError, DownloadTimeoutError
from bankstatements.logger import pipeline_logger

SleepFunc = Callable[[float], Awaitable[None]]


class PollState(str, Enum):
  PENDING = "pending"
  READY = "ready"
  FETCHED = "fetched"
  TIMED_OUT = "timed_out"
  FAILED = "failed"


class Poller:
  """
  Poll a status check until it reports READY.

  Example:
      poller = Poller(interval=1.0, max_attempts=30)
      await poller.wait_until_ready(check_status)
      document = await fetch()
      poller.mark_fetched()
  """

  def __init__(
    self,
    interval: float,
    max_attempts: int,
    sleep: Optional[SleepFunc] = None,
    label: Optional[str] = None,
  ):
    if max_attempts < 1:
      raise ValueError("max_attempts must be at least 1")
    self.interval = interval
    self.max_attempts = max_attempts
    self.sleep = sleep or asyncio.sleep
    self.label = label
    self.state = PollState.PENDING
    self.attempts = 0

  async def wait_until_ready(
    self, check: Callable[[int], Awaitable[PollState]]
  ) -> int:
    """
    Sleep one interval, then check, until ready or out of attempts.

    ``check`` receives the 1-based attempt number and returns PENDING, READY
    or FAILED.

    Returns:
        The attempt on which the document became ready

    Raises:
        DownloadError: ``check`` reported FAILED
        DownloadTimeoutError: still PENDING after ``max_attempts`` checks
    """
    if self.state is not PollState.PENDING:
      raise RuntimeError(f"Poller already finished in state {self.state.value}")

    for attempt in range(1, self.max_attempts + 1):
      await self.sleep(self.interval)
      self.attempts = attempt
      status = await check(attempt)

      if status == PollState.READY:
        self.state = PollState.READY
        pipeline_logger.debug(f"Document ready after {attempt} poll(s)")
        return attempt
      if status == PollState.FAILED:
        self.state = PollState.FAILED
        raise DownloadError(
          f"Document generation failed after {attempt} poll(s)",
          details={"label": self.label, "attempts": attempt},
        )

    self.state = PollState.TIMED_OUT
    pipeline_logger.warning(
      f"Document not ready after {self.max_attempts} polls",
      extra={"component": "pipeline", "action": "poll_timeout"},
    )
    raise DownloadTimeoutError(self.max_attempts, self.label)

  def mark_fetched(self) -> None:
    if self.state is not PollState.READY:
      raise RuntimeError(f"Cannot fetch from state {self.state.value}")
    self.state = PollState.FETCHED
