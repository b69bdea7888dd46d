from __future__ import annotations

from dataclasses import dataclass, field

from lifespan_chart.scales import LinearScale
from lifespan_chart.zoom import IDENTITY, ZoomTransform


@dataclass
class TooltipState:
    opacity: float = 0.0
    transition_ms: int = 0
    html: str = ""
    left: float | None = None
    top: float | None = None


@dataclass
class ViewState:
    """Presentation state shared by the interaction and zoom controllers.

    ``x`` is the horizontal mapping currently on screen: the base scale until
    the first zoom event, the rescaled copy afterwards. Handlers read it from
    here on every event instead of capturing it.
    """

    x: LinearScale
    transform: ZoomTransform = IDENTITY
    hovered: int | None = None
    selected: set[int] = field(default_factory=set)
    tooltip: TooltipState = field(default_factory=TooltipState)
    guide_visible: bool = False
    guide_x: float | None = None
    year_text: str = ""
