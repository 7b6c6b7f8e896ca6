"""Best-effort sequential persistence.

After a dispatch the gateway has several writes to make (outbound message,
receipt, final status). Each runs as its own step in its own transaction; a
failing step is logged and recorded, and the following steps still run. The
caller decides afterwards what a failed step means.
"""
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Step = Tuple[str, Callable[[], Awaitable[object]]]


class StepOutcome(BaseModel):
    name: str
    ok: bool
    error: Optional[str] = None


class StepReport(BaseModel):
    outcomes: List[StepOutcome] = Field(default_factory=list)

    @property
    def failed(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return "; ".join(f"{o.name}: {o.error}" for o in self.failed)


async def run_steps(steps: Sequence[Step], *, context: str = "") -> StepReport:
    """Await every step in order, capturing each failure instead of stopping."""
    report = StepReport()
    for name, step in steps:
        try:
            await step()
        except Exception as exc:
            logger.exception("Step %s failed %s", name, context)
            report.outcomes.append(
                StepOutcome(name=name, ok=False, error=f"{type(exc).__name__}: {exc}")
            )
        else:
            report.outcomes.append(StepOutcome(name=name, ok=True))
    return report
