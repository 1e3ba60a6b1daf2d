"""Computed styles and matched CSS rules for one node.

Converts CSS.getComputedStyleForNode and CSS.getMatchedStylesForNode
responses into plain dicts and CascadeRule records. Long values are
truncated and user-agent rules are dropped from the filtered view.
"""

from __future__ import annotations

import re
from typing import Any

from ot_inspect.models import CascadeRule

_ID_RE = re.compile(r"#[\w-]+")
_CLASS_RE = re.compile(r"\.[\w-]+|\[[^\]]+\]|(?<!:):(?!:)[\w-]+(?:\([^)]*\))?")
_PSEUDO_ELEMENT_RE = re.compile(r"::[\w-]+")
_ELEMENT_RE = re.compile(r"(?:^|[\s>+~(,])([a-zA-Z][\w-]*)")

FONT_FAMILY_KEEP = 3


def calculate_specificity(selector: str) -> str:
    """Approximate specificity as ``inline,id,class,element``."""
    if not selector:
        return "0,0,0,0"
    ids = len(_ID_RE.findall(selector))
    classes = len(_CLASS_RE.findall(selector))
    elements = len(_ELEMENT_RE.findall(selector)) + len(_PSEUDO_ELEMENT_RE.findall(selector))
    return f"0,{ids},{classes},{elements}"


def truncate_value(prop: str, value: str, max_length: int = 100) -> str:
    """Shorten long values; font-family keeps its first three fonts."""
    if len(value) <= max_length:
        return value
    if prop == "font-family":
        fonts = [font.strip() for font in value.split(",")]
        if len(fonts) > FONT_FAMILY_KEEP:
            return ", ".join(fonts[:FONT_FAMILY_KEEP]) + ", ..."
    return value[: max_length - 3] + "..."


def convert_computed_styles(computed: list[dict[str, Any]]) -> dict[str, str]:
    return {item["name"]: item.get("value", "") for item in computed if item.get("name")}


def _rule_from_match(match: dict[str, Any], fallback_source: str) -> CascadeRule | None:
    rule = match.get("rule") or {}
    style = rule.get("style")
    if not style:
        return None

    properties = {
        prop["name"]: prop["value"]
        for prop in style.get("cssProperties", [])
        if prop.get("name") and prop.get("value")
    }
    selectors = [s.get("text", "") for s in rule.get("selectorList", {}).get("selectors", [])]

    if rule.get("origin") == "user-agent":
        source = "user-agent"
    elif rule.get("styleSheetId"):
        source = f"stylesheet:{rule['styleSheetId']}"
    else:
        source = fallback_source

    return CascadeRule(
        selector=", ".join(selectors) or fallback_source,
        source=source,
        specificity=calculate_specificity(selectors[0] if selectors else ""),
        properties=properties,
    )


def convert_cascade_rules(matched: dict[str, Any]) -> list[CascadeRule]:
    """Own matched rules first, then rules inherited from ancestors."""
    rules: list[CascadeRule] = []
    for match in matched.get("matchedCSSRules", []):
        rule = _rule_from_match(match, "inline")
        if rule is not None:
            rules.append(rule)
    for inherited in matched.get("inherited", []):
        for match in inherited.get("matchedCSSRules", []):
            rule = _rule_from_match(match, "inherited")
            if rule is not None:
                rules.append(rule)
    return rules


def filter_computed_styles(styles: dict[str, str], max_length: int = 100) -> dict[str, str]:
    """Drop empty values and truncate the rest."""
    return {
        prop: truncate_value(prop, value, max_length) for prop, value in styles.items() if value
    }


def filter_cascade_rules(rules: list[CascadeRule], max_length: int = 100) -> list[CascadeRule]:
    """Drop user-agent and empty rules and truncate property values."""
    filtered: list[CascadeRule] = []
    for rule in rules:
        if rule.source == "user-agent" or not rule.properties:
            continue
        filtered.append(
            CascadeRule(
                selector=rule.selector,
                source=rule.source,
                specificity=rule.specificity,
                properties={
                    prop: truncate_value(prop, value, max_length)
                    for prop, value in rule.properties.items()
                },
            )
        )
    return filtered


def format_inline_style(css_edits: dict[str, str]) -> str:
    """Serialize edits as a style attribute value: ``prop: value; ...``."""
    return "; ".join(f"{prop}: {value}" for prop, value in css_edits.items())
