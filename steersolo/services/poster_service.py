from __future__ import annotations

import re
import secrets
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.enums import MeteredFeature
from steersolo.core.errors import Forbidden, RateLimited
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Profile, Shop
from steersolo.services.usage_service import FeatureUsageService

log = get_logger(__name__)

DEFAULT_CANVAS = 1080
DEFAULT_BACKGROUND = "#ffffff"
DEFAULT_ELEMENT_WIDTH = 400
DEFAULT_FONT_SIZE = 24
DEFAULT_OFFSET = 50
SUPPORTED_ELEMENT_TYPES = ("text", "image")

PLACEHOLDERS: tuple[tuple[re.Pattern[str], str | None], ...] = (
    (re.compile(r"\{\{shop_name\}\}", re.IGNORECASE), None),
    (re.compile(r"\{\{discount\}\}", re.IGNORECASE), "20%"),
    (re.compile(r"\{\{code\}\}", re.IGNORECASE), "PROMO20"),
    (re.compile(r"\{\{price\}\}", re.IGNORECASE), "₦5,000"),
)

SIZE_LABELS: dict[tuple[int, int], str] = {
    (1080, 1080): "Instagram Post",
    (1080, 1920): "Instagram Story / WhatsApp Status",
    (1200, 630): "Facebook Post",
    (800, 400): "Twitter / X Post",
}


def substitute_placeholders(text: Any, shop_name: str) -> Any:
    if not text or not isinstance(text, str):
        return text
    for pattern, value in PLACEHOLDERS:
        replacement = shop_name if value is None else value
        text = pattern.sub(lambda _match, replacement=replacement: replacement, text)
    return text


def size_label(width: int, height: int) -> str:
    return SIZE_LABELS.get((width, height), "Custom Square")


def default_starter_content(shop_name: str) -> dict[str, Any]:
    return {
        "elements": [
            {
                "id": "title",
                "type": "text",
                "content": shop_name,
                "x": 80,
                "y": 350,
                "width": 920,
                "height": 100,
                "fontSize": 64,
                "fontFamily": "Montserrat",
                "color": "#1e293b",
            },
            {
                "id": "subtitle",
                "type": "text",
                "content": "Add your message here",
                "x": 80,
                "y": 480,
                "width": 920,
                "height": 50,
                "fontSize": 28,
                "fontFamily": "Inter",
                "color": "#64748b",
            },
            {
                "id": "cta",
                "type": "text",
                "content": "ORDER NOW →",
                "x": 80,
                "y": 600,
                "width": 300,
                "height": 60,
                "fontSize": 22,
                "fontFamily": "Inter",
                "color": "#ffffff",
                "backgroundColor": "#3b82f6",
            },
        ],
        "background": "#f8fafc",
        "canvasSize": {"width": DEFAULT_CANVAS, "height": DEFAULT_CANVAS, "label": "Instagram Post"},
    }


def _is_editor_format(raw: dict[str, Any]) -> bool:
    elements = raw.get("elements")
    return (
        bool(raw.get("background"))
        and isinstance(elements, list)
        and len(elements) > 0
        and isinstance(elements[0], dict)
        and elements[0].get("width") is not None
        and not raw.get("canvas")
    )


def _convert_element(element: dict[str, Any], shop_name: str) -> dict[str, Any]:
    width = element.get("width") or DEFAULT_ELEMENT_WIDTH
    height = element.get("height") or (element.get("fontSize") or DEFAULT_FONT_SIZE) * 1.5
    x, y = element.get("x"), element.get("y")
    return {
        "id": element.get("id") or f"el-{secrets.token_hex(3)}",
        "type": element["type"],
        "content": substitute_placeholders(element.get("content") or "", shop_name),
        "x": max(0, x - width / 2) if x is not None else DEFAULT_OFFSET,
        "y": max(0, y - height / 2) if y is not None else DEFAULT_OFFSET,
        "width": width,
        "height": height,
        "fontSize": element.get("fontSize"),
        "fontFamily": element.get("fontFamily") or ("Montserrat" if element.get("fontWeight") == "bold" else "Inter"),
        "color": element.get("color"),
        "backgroundColor": element.get("backgroundColor"),
    }


def transform_template(raw: dict[str, Any] | None, shop_name: str) -> dict[str, Any]:
    """Normalise stored poster templates into editor canvas data.

    Stored templates position elements by their centre inside a ``canvas``
    wrapper; the editor expects top-left coordinates and a root background.
    """

    if not raw:
        return default_starter_content(shop_name)

    if _is_editor_format(raw):
        return {
            **raw,
            "elements": [
                {**element, "content": substitute_placeholders(element.get("content"), shop_name)}
                for element in raw["elements"]
            ],
        }

    canvas = raw.get("canvas") or {}
    width = canvas.get("width") or DEFAULT_CANVAS
    height = canvas.get("height") or DEFAULT_CANVAS
    elements = [
        _convert_element(element, shop_name)
        for element in raw.get("elements") or []
        if isinstance(element, dict) and element.get("type") in SUPPORTED_ELEMENT_TYPES
    ]
    return {
        "elements": elements,
        "background": canvas.get("backgroundColor") or raw.get("background") or DEFAULT_BACKGROUND,
        "canvasSize": {"width": width, "height": height, "label": size_label(width, height)},
    }


class PosterService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._usage = FeatureUsageService(session)

    async def generate(self, profile: Profile, shop: Shop, template: dict[str, Any] | None) -> dict[str, Any]:
        usage = await self._usage.check_feature_usage(profile, MeteredFeature.POSTER_GENERATION)
        if usage.blocked_by_plan:
            raise Forbidden(
                "Poster generation requires a Pro or Business plan. Upgrade to unlock.",
                payload={"upgrade_required": True},
            )
        if not usage.can_use:
            raise RateLimited(
                "Monthly poster limit reached. Upgrade for more.",
                payload={"limit_reached": True, "current_usage": usage.current_usage, "max_usage": usage.max_usage},
            )
        canvas = transform_template(template, shop.shop_name)
        await self._usage.increment_usage(profile, MeteredFeature.POSTER_GENERATION)
        log.info("poster_generated", shop_id=shop.id, profile_id=profile.id, elements=len(canvas["elements"]))
        return canvas
