"""
Collage export as an ordered list of named strategies. Each attempt yields an ExportResult;
export_collage stops at the first success.
"""
import html
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from client_cli.collage import Collage, grid_dimension

logger = logging.getLogger(__name__)


class ExportUnavailable(Exception):
    """Strategy cannot run for this collage (e.g. nothing was rendered)."""


@dataclass(frozen=True)
class ExportResult:
    strategy: str
    success: bool
    path: Path | None = None
    error: str | None = None


@dataclass
class ExportReport:
    attempts: list[ExportResult] = field(default_factory=list)

    @property
    def result(self) -> ExportResult | None:
        """The successful attempt, if any."""
        for attempt in self.attempts:
            if attempt.success:
                return attempt
        return None


@dataclass(frozen=True)
class ExportStrategy:
    name: str
    suffix: str
    write: Callable[[Collage, Path], None]


def _rendered(collage: Collage):
    if collage.image is None:
        raise ExportUnavailable("collage has no rendered image")
    return collage.image


def write_png(collage: Collage, path: Path) -> None:
    _rendered(collage).save(path, format="PNG")


def write_jpeg(collage: Collage, path: Path) -> None:
    _rendered(collage).convert("RGB").save(path, format="JPEG", quality=95)


def write_html(collage: Collage, path: Path) -> None:
    """Image-free fallback: a grid page linking the original artwork."""
    if not collage.items:
        raise ExportUnavailable("collage has no items")
    dim = grid_dimension(collage.collage_size)
    cells = []
    for item in collage.items:
        name = html.escape(item.get("name", ""))
        artist = html.escape(item.get("artist", ""))
        caption = f"{name}<br><small>{artist}</small>" if artist else name
        cells.append(
            f'<a href="{html.escape(item.get("spotifyUrl", ""), quote=True)}">'
            f'<img src="{html.escape(item.get("imageUrl", ""), quote=True)}" alt="{name}">'
            f"<span>{caption}</span></a>"
        )
    attribution = collage.attribution or {}
    page = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{html.escape(collage.file_stem)}</title>
  <style>
    body {{ background: #000; color: #fff; font-family: system-ui, sans-serif; }}
    .grid {{ display: grid; grid-template-columns: repeat({dim}, 1fr); gap: 0; max-width: 1200px; }}
    .grid a {{ position: relative; color: #fff; text-decoration: none; }}
    .grid img {{ width: 100%; aspect-ratio: 1; object-fit: cover; display: block; background: #000; }}
    .grid span {{ position: absolute; bottom: 0; left: 0; right: 0; padding: 0.4rem; background: rgba(0,0,0,0.7); }}
  </style>
</head>
<body>
  <div class="grid">
    {"".join(cells)}
  </div>
  <p><img src="{html.escape(attribution.get("spotifyLogo", ""), quote=True)}" alt="Spotify" height="24">
  {html.escape(attribution.get("disclaimer", ""))}</p>
</body>
</html>"""
    path.write_text(page, encoding="utf-8")


DEFAULT_STRATEGIES = (
    ExportStrategy("png", ".png", write_png),
    ExportStrategy("jpeg", ".jpg", write_jpeg),
    ExportStrategy("html", ".html", write_html),
)


def run_strategy(strategy: ExportStrategy, collage: Collage, out_dir: Path) -> ExportResult:
    path = out_dir / f"{collage.file_stem}{strategy.suffix}"
    try:
        strategy.write(collage, path)
    except (ExportUnavailable, OSError, ValueError) as e:
        logger.warning("Export via %s failed: %s", strategy.name, e)
        path.unlink(missing_ok=True)
        return ExportResult(strategy=strategy.name, success=False, error=str(e))
    logger.info("Collage exported via %s to %s", strategy.name, path)
    return ExportResult(strategy=strategy.name, success=True, path=path)


def export_collage(
    collage: Collage,
    out_dir: Path,
    strategies: tuple[ExportStrategy, ...] = DEFAULT_STRATEGIES,
) -> ExportReport:
    """Try strategies in order; stop at the first that succeeds."""
    out_dir.mkdir(parents=True, exist_ok=True)
    report = ExportReport()
    for strategy in strategies:
        result = run_strategy(strategy, collage, out_dir)
        report.attempts.append(result)
        if result.success:
            break
    else:
        logger.error("All export methods failed for %s", collage.file_stem)
    return report
