import concurrent.futures
from typing import TYPE_CHECKING, Callable, Final, TypeAlias

from utils import Action

if TYPE_CHECKING:
    from engine import Engine

DEFAULT_TIMEOUT: Final[float] = 5.0

Solver: TypeAlias = Callable[["Engine"], Action | None]


def run_endgame(
    engine: "Engine", solver: Solver, timeout: float = DEFAULT_TIMEOUT
) -> Action | None:
    """
    Run an endgame search on a private copy of the engine in a worker thread.

    Returns the solver's action, or None if it gave up or ran out of time. The
    live engine is never handed to the solver, so it can keep taking actions
    while a timed-out search finishes in the background.
    """
    snapshot = engine.snapshot()
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(solver, snapshot)
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        print(f"endgame search timed out after {timeout}s", file=engine.log)
        return None
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
