"""Unit tests for style conversion, filtering and the page scripts."""

from __future__ import annotations

import json

import pytest

from ot_inspect import scripts
from ot_inspect.models import CascadeRule
from ot_inspect.styles import (
    calculate_specificity,
    convert_cascade_rules,
    convert_computed_styles,
    filter_cascade_rules,
    filter_computed_styles,
    format_inline_style,
    truncate_value,
)

# -----------------------------------------------------------------------------
# Specificity and truncation
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.inspector
@pytest.mark.parametrize(
    ("selector", "expected"),
    [
        ("#main .card p", "0,1,1,1"),
        ("div", "0,0,0,1"),
        (".a.b", "0,0,2,0"),
        ("a:hover", "0,0,1,1"),
        ("p::before", "0,0,0,2"),
        ('input[type="text"]', "0,0,1,1"),
        ("ul > li + li", "0,0,0,3"),
        ("", "0,0,0,0"),
    ],
)
def test_calculate_specificity(selector, expected):
    assert calculate_specificity(selector) == expected


@pytest.mark.unit
@pytest.mark.inspector
class TestTruncateValue:
    def test_short_value_unchanged(self):
        assert truncate_value("color", "red") == "red"

    def test_long_value_gets_ellipsis(self):
        value = "x" * 150

        result = truncate_value("background-image", value, max_length=100)

        assert len(result) == 100
        assert result.endswith("...")

    def test_font_family_keeps_three_fonts(self):
        value = ", ".join(f"Font Family Number {i}" for i in range(8))

        result = truncate_value("font-family", value, max_length=50)

        assert result == "Font Family Number 0, Font Family Number 1, Font Family Number 2, ..."


# -----------------------------------------------------------------------------
# Conversion and filtering
# -----------------------------------------------------------------------------


def _match(selector: str, properties: dict[str, str], **rule) -> dict:
    return {
        "rule": {
            "selectorList": {"selectors": [{"text": selector}]},
            "style": {"cssProperties": [{"name": k, "value": v} for k, v in properties.items()]},
            **rule,
        }
    }


@pytest.mark.unit
@pytest.mark.inspector
class TestStyles:
    def test_convert_computed_styles(self):
        computed = [{"name": "color", "value": "red"}, {"name": "", "value": "x"}, {"name": "margin"}]

        assert convert_computed_styles(computed) == {"color": "red", "margin": ""}

    def test_filter_computed_styles_drops_empty(self):
        styles = {"color": "red", "outline": "", "font-family": "a, b, c, d"}

        assert filter_computed_styles(styles, max_length=5) == {
            "color": "red",
            "font-family": "a, b, c, ...",
        }

    def test_convert_cascade_rules_sources(self):
        matched = {
            "matchedCSSRules": [
                _match("div", {"display": "block"}, origin="user-agent"),
                _match(".card", {"padding": "15px"}, origin="regular", styleSheetId="3"),
                _match("", {"color": "blue"}),
            ],
            "inherited": [{"matchedCSSRules": [_match("body", {"font-size": "16px"})]}],
        }

        rules = convert_cascade_rules(matched)

        assert [(r.selector, r.source) for r in rules] == [
            ("div", "user-agent"),
            (".card", "stylesheet:3"),
            ("inline", "inline"),
            ("body", "inherited"),
        ]
        assert rules[1].specificity == "0,0,1,0"

    def test_rules_without_style_are_skipped(self):
        assert convert_cascade_rules({"matchedCSSRules": [{"rule": {}}]}) == []

    def test_filter_cascade_rules(self):
        rules = [
            CascadeRule("div", "user-agent", "0,0,0,1", {"display": "block"}),
            CascadeRule(".empty", "stylesheet:1", "0,0,1,0", {}),
            CascadeRule(".card", "stylesheet:1", "0,0,1,0", {"content": "'" + "x" * 200 + "'"}),
        ]

        filtered = filter_cascade_rules(rules, max_length=20)

        assert [r.selector for r in filtered] == [".card"]
        assert len(filtered[0].properties["content"]) == 20
        assert len(rules[2].properties["content"]) == 202

    def test_format_inline_style(self):
        assert format_inline_style({"color": "red", "margin-top": "4px"}) == "color: red; margin-top: 4px"


# -----------------------------------------------------------------------------
# Page scripts
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.inspector
class TestScripts:
    def test_selector_is_json_escaped(self):
        selector = 'a[title="it\'s"] \\ b'

        script = scripts.mark_elements(selector, 3, "_inspect_abc")

        assert f"document.querySelectorAll({json.dumps(selector)})" in script
        assert "slice(0, 3)" in script
        assert 'const uniqueId = "_inspect_abc"' in script

    def test_id_selector(self):
        assert scripts.id_selector("_inspect_abc_0") == '[data-inspect-id="_inspect_abc_0"]'

    def test_cleanup_only_removes_own_prefix(self):
        script = scripts.cleanup_marks("_inspect_abc")

        assert json.dumps('[data-inspect-id^="_inspect_abc_"]') in script

    def test_scroll_queries_every_element(self):
        script = scripts.scroll_to_elements(["t_0", "t_1"])

        assert script.count("document.querySelector(") == 2
        assert "behavior: 'instant'" in script
