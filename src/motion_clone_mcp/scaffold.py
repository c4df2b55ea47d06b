"""Static Vite + React preview shell around the working component.

The dev server itself is external (``npm install && npm run dev`` inside
the preview directory); it hot-reloads whenever the component file changes.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .scratch import ScratchArea

logger = logging.getLogger(__name__)

PREVIEW_PORT = 5173

PACKAGE_JSON: dict = {
    "name": "motion-clone-preview",
    "private": True,
    "version": "0.0.0",
    "type": "module",
    "scripts": {
        "dev": f"vite --port {PREVIEW_PORT}",
        "build": "vite build",
    },
    "dependencies": {
        "react": "^18.3.1",
        "react-dom": "^18.3.1",
        "framer-motion": "^11.0.0",
    },
    "devDependencies": {
        "@vitejs/plugin-react": "^4.3.0",
        "vite": "^5.4.0",
    },
}

VITE_CONFIG = """\
import { defineConfig } from 'vite';
import react from '@vitejs/plugin-react';

export default defineConfig({ plugins: [react()] });
"""

INDEX_HTML = """\
<!doctype html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Animation preview</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/main.jsx"></script>
  </body>
</html>
"""

MAIN_JSX = """\
import React from 'react';
import ReactDOM from 'react-dom/client';
import Animation from './Animation.jsx';
import './index.css';

ReactDOM.createRoot(document.getElementById('root')).render(
  <React.StrictMode>
    <Animation />
  </React.StrictMode>
);
"""

INDEX_CSS = """\
*, *::before, *::after { box-sizing: border-box; }
html, body, #root { margin: 0; height: 100%; }
body {
  display: flex;
  align-items: center;
  justify-content: center;
  background: #f5f5f5;
  font-family: system-ui, -apple-system, sans-serif;
}
"""


def _shell_files() -> dict[str, str]:
    return {
        "package.json": json.dumps(PACKAGE_JSON, indent=2) + "\n",
        "vite.config.js": VITE_CONFIG,
        "index.html": INDEX_HTML,
        "src/main.jsx": MAIN_JSX,
        "src/index.css": INDEX_CSS,
    }


def write_scaffold(scratch: ScratchArea) -> list[Path]:
    """Write the preview shell into the scratch area; existing files are left alone."""
    written = []
    for rel, body in _shell_files().items():
        target = scratch.preview_dir / rel
        if target.exists():
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(body)
        written.append(target)
    if written:
        logger.info("Wrote %d preview scaffold file(s) to %s", len(written), scratch.preview_dir)
    return written


def write_component(scratch: ScratchArea, source: str) -> Path:
    """Replace the working component; the dev server picks the change up."""
    path = scratch.component_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source)
    return path
