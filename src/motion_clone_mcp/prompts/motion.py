"""Motion analysis prompt template.

MOTION_ANALYSIS: sent with the inline clip (and optional frames) to Gemini.
Variables: {duration_hint}, {frame_hint}.
The headings must stay in sync with ``models.frames.ANALYSIS_SECTIONS``.
"""

from __future__ import annotations

MOTION_ANALYSIS = """\
You are a motion designer reverse-engineering a UI animation so a developer \
can rebuild it as a React component. Watch the entire clip frame by frame. \
{duration_hint}{frame_hint}

Answer under exactly these Markdown headings, in this order:

## Layout
Canvas size and aspect ratio, background, and where each element sits at rest.

## Elements
Every moving or changing element: shape, size, colour (hex where possible), \
typography, borders, shadows.

## Sequence
Numbered steps in the order they happen. Say which steps overlap.

## Timing
Start time and duration of every step in milliseconds, the easing curve \
(name or cubic-bezier), any stagger between repeated elements, and whether \
the animation loops.

## Trigger
What starts the animation: page load, hover, click, scroll position, or a loop.

## Final State
What the screen looks like once everything has settled.

Be precise and literal. Do not write code."""

DURATION_HINT = "The clip is about {seconds:.1f} seconds long. "
FRAME_HINT = (
    "You are also given {count} still frames sampled every {interval:.2f}s, in order, "
    "starting at 0s; use them to pin down positions and timing."
)
