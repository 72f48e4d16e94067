# src/formengine/dom/style.py
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel

logger = logging.getLogger(__name__)

_COMMENT_PATTERN = re.compile(r"/\*.*?\*/", re.DOTALL)
_PRELUDE_SPLIT = re.compile(r"[;}]")
_ZERO_LENGTH = re.compile(r"^0(?:\.0+)?(?:px|em|rem|%|vh|vw)?$")

# Properties resolved by the engine; everything else in a declaration block is ignored.
TRACKED_PROPERTIES = ("display", "visibility", "opacity", "width", "height")


class ComputedStyle(BaseModel):
    """Subset of computed CSS needed to decide whether a control is rendered."""
    display: str = "inline"
    visibility: str = "visible"
    opacity: float = 1.0
    width: Optional[str] = None
    height: Optional[str] = None
    rendered: bool = True

    @property
    def has_zero_size(self) -> bool:
        return any(
            v is not None and _ZERO_LENGTH.match(v.strip()) is not None
            for v in (self.width, self.height)
        )


def parse_declarations(text: str) -> Dict[str, str]:
    """Parses a CSS declaration block ('a: b; c: d') into a dict of tracked properties."""
    out: Dict[str, str] = {}
    for part in (text or "").split(";"):
        if ":" not in part:
            continue
        prop, value = part.split(":", 1)
        prop = prop.strip().lower()
        if prop not in TRACKED_PROPERTIES:
            continue
        out[prop] = value.replace("!important", "").strip().lower()
    return out


def iter_style_rules(css: str) -> Iterator[Tuple[str, str]]:
    """
    Yields (selector text, declaration block) for the top-level rules of a
    stylesheet. At-rule blocks (@media, @supports, @font-face...) are
    skipped whole, since their conditions cannot be evaluated here.
    """
    pos = 0
    while True:
        open_at = css.find("{", pos)
        if open_at == -1:
            return
        depth = 0
        close_at = open_at
        while close_at < len(css):
            if css[close_at] == "{":
                depth += 1
            elif css[close_at] == "}":
                depth -= 1
                if depth == 0:
                    break
            close_at += 1
        # Statement at-rules (@import ...;) and stray braces precede the selector.
        prelude = _PRELUDE_SPLIT.split(css[pos:open_at])[-1].strip()
        if prelude and not prelude.startswith("@"):
            yield prelude, css[open_at + 1:close_at]
        pos = close_at + 1


class StyleResolver:
    """
    Resolves a small computed style for elements of a parsed document.

    Sources, in increasing precedence: user-agent defaults (the `hidden`
    attribute and hidden inputs), rules from <style> blocks in document
    order, and the inline style attribute. Specificity is not modelled;
    a later rule wins over an earlier one.
    """

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup
        self._rules: Optional[List[Tuple[Any, Dict[str, str]]]] = None

    def invalidate(self) -> None:
        """Drops the parsed stylesheet cache; called whenever the document mutates."""
        self._rules = None

    def _load_rules(self) -> List[Tuple[Any, Dict[str, str]]]:
        rules: List[Tuple[Any, Dict[str, str]]] = []
        for style_tag in self.soup.find_all("style"):
            css = _COMMENT_PATTERN.sub("", style_tag.get_text())
            for selector_text, body in iter_style_rules(css):
                declarations = parse_declarations(body)
                if not declarations:
                    continue
                for selector in selector_text.split(","):
                    selector = selector.strip()
                    if not selector or selector.startswith("@"):
                        continue
                    try:
                        compiled = self.soup.css.compile(selector)
                    except Exception as e:
                        logger.debug("Skipping unsupported selector %r: %s", selector, e)
                        continue
                    rules.append((compiled, declarations))
        logger.debug("Parsed %d style rules.", len(rules))
        return rules

    @property
    def rules(self) -> List[Tuple[Any, Dict[str, str]]]:
        if self._rules is None:
            self._rules = self._load_rules()
        return self._rules

    def declared(self, tag: Tag) -> Dict[str, str]:
        """Returns the cascaded (non-inherited) declarations for a single element."""
        values: Dict[str, str] = {}
        if tag.has_attr("hidden"):
            values["display"] = "none"
        if tag.name == "input" and str(tag.get("type", "")).lower() == "hidden":
            values["display"] = "none"
        if tag.name in ("script", "style", "noscript", "head"):
            values["display"] = "none"
        # Declarative shadow roots render as their host's content.
        if tag.name == "template" and not tag.has_attr("shadowrootmode"):
            values["display"] = "none"

        for compiled, declarations in self.rules:
            if compiled.match(tag):
                values.update(declarations)

        values.update(parse_declarations(tag.get("style", "")))
        return values

    def computed_style(self, tag: Tag) -> ComputedStyle:
        own = self.declared(tag)
        display = own.get("display", "inline")
        visibility = own.get("visibility")
        opacity = _to_opacity(own.get("opacity"))
        rendered = display != "none"

        for ancestor in tag.parents:
            if not isinstance(ancestor, Tag) or ancestor.name == "[document]":
                break
            inherited = self.declared(ancestor)
            if inherited.get("display") == "none":
                rendered = False
            if visibility is None and "visibility" in inherited:
                visibility = inherited["visibility"]
            opacity *= _to_opacity(inherited.get("opacity"))

        style = ComputedStyle(
            display=display,
            visibility=visibility or "visible",
            opacity=opacity,
            width=own.get("width"),
            height=own.get("height"),
        )
        style.rendered = (
            rendered
            and style.visibility not in ("hidden", "collapse")
            and style.opacity > 0
            and not style.has_zero_size
        )
        return style


def _to_opacity(value: Optional[str]) -> float:
    if value is None:
        return 1.0
    try:
        if value.endswith("%"):
            return float(value[:-1]) / 100.0
        return float(value)
    except ValueError:
        return 1.0
