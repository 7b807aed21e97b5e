"""
Content Cleaner
===============

HTML to Markdown conversion for content extracted from linked pages.

BeautifulSoup selects the content region and strips unsafe elements;
markdownify turns what is left into Markdown.
"""

import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment
from markdownify import ATX, markdownify


class ContentCleaner:
    """Convert an HTML fragment into portable Markdown."""

    # HTML elements to completely remove (including content)
    DANGEROUS_ELEMENTS = {
        "script",
        "style",
        "iframe",
        "embed",
        "object",
        "applet",
        "form",
        "input",
        "button",
        "select",
        "textarea",
        "meta",
        "link",
        "base",
        "noscript",
        "canvas",
        "svg",
    }

    # Attributes holding URLs that are resolved against the page URL
    URL_ATTRIBUTES = {"a": "href", "img": "src"}

    MULTIPLE_NEWLINES_PATTERN = re.compile(r"\n\s*\n\s*\n+")
    JAVASCRIPT_URL_PATTERN = re.compile(r"^\s*javascript:", re.IGNORECASE)

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser
        self.markdown_options = {
            "heading_style": ATX,
            "bullets": "*",
        }

    def extract_region(self, html_content: str, selector: str) -> Optional[str]:
        """Return the inner HTML of the first element matching selector."""
        soup = BeautifulSoup(html_content, self.parser)
        region = soup.select_one(selector)
        if region is None:
            return None
        return region.decode_contents()

    def to_markdown(self, html_content: Optional[str], base_url: Optional[str] = None) -> str:
        """Convert HTML to Markdown. Empty input gives an empty string."""
        if not html_content:
            return ""

        soup = self.clean(html_content, base_url)
        markdown = markdownify(str(soup), **self.markdown_options)
        markdown = self.MULTIPLE_NEWLINES_PATTERN.sub("\n\n", markdown)
        return "\n".join(line.rstrip() for line in markdown.strip().splitlines())

    def clean(self, html_content: str, base_url: Optional[str] = None) -> BeautifulSoup:
        """Parse HTML, drop unsafe elements and comments, absolutize links."""
        soup = BeautifulSoup(html_content, self.parser)
        for element in soup.find_all(list(self.DANGEROUS_ELEMENTS)):
            element.decompose()
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        for tag_name, attribute in self.URL_ATTRIBUTES.items():
            for tag in soup.find_all(tag_name):
                url = tag.get(attribute)
                if not url:
                    continue
                if self.JAVASCRIPT_URL_PATTERN.match(url):
                    if tag_name == "a":
                        # Script-only links keep their text
                        tag.unwrap()
                    else:
                        tag.decompose()
                elif base_url:
                    tag[attribute] = urljoin(base_url, url)
        return soup
