import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# formats handed to graphviz, anything else is written as raw DOT text
RENDER_FORMATS = {"pdf", "png", "svg"}


@dataclass(frozen=True)
class RenderResult:
    path: str
    ok: bool
    status: Optional[int] = None
    message: str = ""


def output_format(output_path: str) -> str:
    """Renderer format derived from the file extension, "" for raw text."""
    return Path(output_path).suffix.lstrip(".").lower()


def write_dot(dot: str, output_path: str) -> RenderResult:
    try:
        Path(output_path).write_text(dot, encoding="utf-8")
    except OSError as e:
        logger.warning("Unable to write %s: %s", output_path, e)
        return RenderResult(output_path, ok=False, status=e.errno, message=str(e))

    logger.info("Wrote %s", output_path)
    return RenderResult(output_path, ok=True, status=0)


def render_dot(dot: str, output_path: str, fmt: str, renderer: str = "dot") -> RenderResult:
    """Pipe the graph through graphviz into output_path."""
    try:
        process = subprocess.run(
            [renderer, f"-T{fmt}", "-o", output_path],
            input=dot.encode("utf-8"),
            capture_output=True,
        )
    except OSError as e:
        logger.warning("Unable to run %s: %s", renderer, e)
        return RenderResult(output_path, ok=False, message=str(e))

    if process.returncode != 0:
        message = process.stderr.decode("utf-8", errors="replace").strip()
        logger.warning("%s exited with %d: %s", renderer, process.returncode, message)
        return RenderResult(output_path, ok=False, status=process.returncode, message=message)

    logger.info("Rendered %s", output_path)
    return RenderResult(output_path, ok=True, status=0)


def write_graph(dot: str, output_path: str, renderer: str = "dot") -> RenderResult:
    """Write the graph as raw DOT text or render it, chosen by extension."""
    fmt = output_format(output_path)
    if fmt in RENDER_FORMATS:
        return render_dot(dot, output_path, fmt, renderer)
    return write_dot(dot, output_path)
