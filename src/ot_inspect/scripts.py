"""JavaScript snippets evaluated in the page via Runtime.evaluate.

Every value interpolated into a script goes through json.dumps so selectors
with quotes or backslashes cannot break out of the string literal.
"""

from __future__ import annotations

import json

INSPECT_ATTRIBUTE = "data-inspect-id"


def id_selector(unique_id: str) -> str:
    """CSS selector for an element tagged with unique_id."""
    return f'[{INSPECT_ATTRIBUTE}="{unique_id}"]'


def _query(unique_id: str) -> str:
    return f"document.querySelector({json.dumps(id_selector(unique_id))})"


def mark_elements(selector: str, limit: int, token: str) -> str:
    """Tag up to limit matches with ``<token>_<index>``.

    Returns ``{total, marked: [{index, uniqueId, tagName, id, className}]}``.
    An invalid selector throws, which surfaces as exceptionDetails.
    """
    return f"""
(function() {{
  const elements = Array.from(document.querySelectorAll({json.dumps(selector)}));
  const marked = elements.slice(0, {int(limit)}).map((el, i) => {{
    const uniqueId = {json.dumps(token)} + '_' + i;
    el.setAttribute({json.dumps(INSPECT_ATTRIBUTE)}, uniqueId);
    return {{
      index: i,
      uniqueId: uniqueId,
      tagName: el.tagName,
      id: el.id || null,
      className: (typeof el.className === 'string' && el.className) || null
    }};
  }});
  return {{ total: elements.length, marked: marked }};
}})()
"""


def element_metrics(unique_id: str) -> str:
    """Border box, spacing and scroll state for one tagged element, or null."""
    return f"""
(function() {{
  const element = {_query(unique_id)};
  if (!element) return null;
  const rect = element.getBoundingClientRect();
  const styles = window.getComputedStyle(element);
  if (rect.width === 0 && rect.height === 0 && styles.display === 'none') return null;
  const px = (value) => parseFloat(value) || 0;
  const scrollX = window.scrollX || window.pageXOffset || 0;
  const scrollY = window.scrollY || window.pageYOffset || 0;
  return {{
    viewport: {{ x: rect.left, y: rect.top, width: rect.width, height: rect.height }},
    boxSizing: styles.boxSizing || 'content-box',
    page: {{ x: rect.left + scrollX, y: rect.top + scrollY, width: rect.width, height: rect.height }},
    scroll: {{ x: scrollX, y: scrollY }},
    viewportSize: {{ width: window.innerWidth, height: window.innerHeight }},
    margin: {{
      top: px(styles.marginTop), right: px(styles.marginRight),
      bottom: px(styles.marginBottom), left: px(styles.marginLeft)
    }},
    padding: {{
      top: px(styles.paddingTop), right: px(styles.paddingRight),
      bottom: px(styles.paddingBottom), left: px(styles.paddingLeft)
    }},
    border: {{
      top: px(styles.borderTopWidth), right: px(styles.borderRightWidth),
      bottom: px(styles.borderBottomWidth), left: px(styles.borderLeftWidth)
    }}
  }};
}})()
"""


def scroll_to_elements(unique_ids: list[str]) -> str:
    """Scroll so the bounding box of all tagged elements is centered.

    Returns ``{scrollDelta, finalScroll, targetBounds, viewportSize}`` or
    ``{error}`` when none of the elements exist.
    """
    queries = ", ".join(_query(unique_id) for unique_id in unique_ids)
    return f"""
(function() {{
  const elements = [{queries}].filter(el => el !== null);
  if (elements.length === 0) return {{ error: 'no tagged elements found' }};
  let minX = Infinity, minY = Infinity, maxX = -Infinity, maxY = -Infinity;
  for (const el of elements) {{
    const rect = el.getBoundingClientRect();
    minX = Math.min(minX, rect.left);
    minY = Math.min(minY, rect.top);
    maxX = Math.max(maxX, rect.right);
    maxY = Math.max(maxY, rect.bottom);
  }}
  const before = {{ x: window.scrollX, y: window.scrollY }};
  window.scrollBy({{
    left: (minX + maxX) / 2 - window.innerWidth / 2,
    top: (minY + maxY) / 2 - window.innerHeight / 2,
    behavior: 'instant'
  }});
  const after = {{ x: window.scrollX, y: window.scrollY }};
  return {{
    scrollDelta: {{ x: after.x - before.x, y: after.y - before.y }},
    finalScroll: after,
    targetBounds: {{
      x: minX - (after.x - before.x),
      y: minY - (after.y - before.y),
      width: maxX - minX,
      height: maxY - minY
    }},
    viewportSize: {{ width: window.innerWidth, height: window.innerHeight }}
  }};
}})()
"""


def click_coordinates(unique_id: str) -> str:
    """Viewport center of one tagged element, or ``{error}``."""
    return f"""
(function() {{
  const element = {_query(unique_id)};
  if (!element) return {{ error: 'element not found' }};
  const rect = element.getBoundingClientRect();
  if (rect.width === 0 || rect.height === 0) return {{ error: 'element has no size' }};
  return {{ x: rect.left + rect.width / 2, y: rect.top + rect.height / 2 }};
}})()
"""


def element_descriptions(selector: str, limit: int) -> str:
    """Unique selectors and short text for the first matches.

    Returns ``{total, elements: [{selector, text}]}``.
    """
    return f"""
(function() {{
  const uniqueSelector = (el) => {{
    if (el.id) return '#' + CSS.escape(el.id);
    const parts = [];
    let node = el;
    while (node && node.nodeType === 1 && node !== document.body) {{
      if (node.id) {{ parts.unshift('#' + CSS.escape(node.id)); break; }}
      let index = 1;
      let sibling = node;
      while ((sibling = sibling.previousElementSibling)) {{
        if (sibling.tagName === node.tagName) index++;
      }}
      parts.unshift(node.tagName.toLowerCase() + ':nth-of-type(' + index + ')');
      node = node.parentElement;
    }}
    return parts.join(' > ');
  }};
  const elements = Array.from(document.querySelectorAll({json.dumps(selector)}));
  return {{
    total: elements.length,
    elements: elements.slice(0, {int(limit)}).map(el => ({{
      selector: uniqueSelector(el),
      text: (el.innerText || el.textContent || '').trim().replace(/\\s+/g, ' ').slice(0, 50)
    }}))
  }};
}})()
"""


def cleanup_marks(token: str) -> str:
    """Remove the tags this run added, leaving other runs' tags alone."""
    prefix = json.dumps(f'[{INSPECT_ATTRIBUTE}^="{token}_"]')
    return f"""
(function() {{
  const elements = document.querySelectorAll({prefix});
  elements.forEach(el => el.removeAttribute({json.dumps(INSPECT_ATTRIBUTE)}));
  return elements.length;
}})()
"""
