"""Hidden-browser support: rendering surfaces, the polling scrape machine, and login capture."""

from .login import capture_login
from .machine import ScrapeMachine, ScrapeState
from .surface import BrowserSurface, RenderingSurface, parse_extracted

__all__ = [
    "BrowserSurface",
    "RenderingSurface",
    "ScrapeMachine",
    "ScrapeState",
    "capture_login",
    "parse_extracted",
]
