"""Main FastMCP server — mounts all sub-servers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from .client import GeminiClient
from .sessions import session_store
from .tools.infra import infra_server
from .tools.iterate import iterate_server
from .tools.pipeline import pipeline_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Shutdown hook: drops unfinished sessions and shared Gemini clients."""
    yield {}
    discarded = session_store.clear()
    closed = await GeminiClient.close_all()
    logger.info("Lifespan shutdown: %d session(s) discarded, %d client(s) closed", discarded, closed)


app = FastMCP(
    "motion-clone",
    instructions=(
        "Turn a short video or GIF of a UI animation into a React component. "
        "clone_start → clone_sample_frames → clone_analyze → clone_begin_iteration, "
        "then clone_feedback / clone_detail / clone_revise until the user rates it "
        "perfect or cancels."
    ),
    lifespan=_lifespan,
)

app.mount(pipeline_server)
app.mount(iterate_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``motion-clone-mcp`` console script."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run()


if __name__ == "__main__":
    main()
