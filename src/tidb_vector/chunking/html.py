"""HTML to text conversion for chunking."""

from bs4 import BeautifulSoup

_NON_CONTENT_TAGS = ("script", "style", "noscript", "template")


def strip_html(html: str) -> str:
    """Return the visible text of an HTML fragment, one block per line."""
    soup = BeautifulSoup(html, "html.parser")
    for tag_name in _NON_CONTENT_TAGS:
        for tag in soup.find_all(tag_name):
            tag.decompose()
    return soup.get_text(separator="\n", strip=True)
