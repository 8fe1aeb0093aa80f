"""Allow-list HTML sanitizer that reduces a front page to its headline structure."""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, Tag


ALLOWED_TAGS = frozenset(
    {
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "p",
        "a",
        "div",
        "section",
        "article",
        "main",
        "header",
        "footer",
        "nav",
        "aside",
        "ul",
        "ol",
        "li",
        "span",
    }
)

# Removed together with their contents
DROPPED_TAGS = frozenset(
    {
        "script",
        "style",
        "noscript",
        "template",
        "svg",
        "iframe",
        "head",
        "link",
        "meta",
        "object",
        "embed",
        "canvas",
        "input",
        "select",
        "textarea",
    }
)

ANCHOR_ATTRS = ("href", "title")
ELEMENT_ATTRS = ("class", "id")


def sanitize_html(html: str, base_url: str) -> str:
    """Return ``html`` reduced to allow-listed tags and attributes.

    Anchor hrefs are made absolute against ``base_url`` and elements without
    any visible text are dropped.
    """
    soup = BeautifulSoup(html, "html.parser")

    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for tag in soup.find_all(list(DROPPED_TAGS)):
        if not tag.decomposed:
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()

    for tag in soup.find_all(True):
        _filter_attrs(tag, base_url)

    # Innermost first so emptied parents are caught too
    for tag in reversed(soup.find_all(True)):
        if not tag.get_text(strip=True):
            tag.decompose()

    return str(soup).strip()


def _filter_attrs(tag: Tag, base_url: str) -> None:
    allowed = ANCHOR_ATTRS if tag.name == "a" else ELEMENT_ATTRS
    tag.attrs = {key: value for key, value in tag.attrs.items() if key in allowed}
    if tag.name == "a" and "href" in tag.attrs:
        href = str(tag.attrs["href"]).strip()
        if href.lower().startswith("javascript:"):
            del tag.attrs["href"]
        else:
            tag.attrs["href"] = urljoin(base_url, href)
