# core/template_engine.py
"""
Secure Template Engine for outgoing email and admin-authored HTML
Implements XSS protection for blog content and autoescaped Jinja2 email bodies
"""

import html
import logging
import time
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import bleach
from bleach.css_sanitizer import CSSSanitizer
from bs4 import BeautifulSoup
from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape
from jinja2.exceptions import TemplateError

from core.email_templates import TEMPLATES

logger = logging.getLogger(__name__)


class ContentType(Enum):
    """Supported content types"""
    HTML = "html"
    TEXT = "text"
    MIXED = "mixed"


@dataclass
class TemplateRenderResult:
    """Result of template rendering operation"""
    html: Optional[str]
    text: Optional[str]
    size_bytes: int
    render_time_ms: float


class TemplateRenderingError(Exception):
    """Template rendering related errors"""
    pass


class SecureTemplateEngine:
    """
    Renders email templates and sanitises rich text written in the admin panel
    """

    # Rich-text tags produced by the admin blog editor
    CONTENT_SAFE_TAGS = [
        'p', 'br', 'strong', 'em', 'b', 'i', 'u', 's', 'sub', 'sup',
        'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
        'ul', 'ol', 'li', 'dl', 'dt', 'dd',
        'a', 'img', 'figure', 'figcaption',
        'table', 'thead', 'tbody', 'tfoot', 'tr', 'td', 'th', 'caption',
        'div', 'span', 'section', 'article', 'header', 'footer',
        'hr', 'blockquote', 'pre', 'code', 'iframe'
    ]

    CONTENT_SAFE_ATTRIBUTES = {
        '*': ['class', 'id', 'style', 'title', 'dir', 'lang'],
        'a': ['href', 'title', 'rel', 'target'],
        'img': ['src', 'alt', 'width', 'height', 'title'],
        'iframe': ['src', 'width', 'height', 'allowfullscreen', 'frameborder'],
        'td': ['colspan', 'rowspan', 'align', 'valign'],
        'th': ['colspan', 'rowspan', 'align', 'valign'],
    }

    CONTENT_SAFE_PROTOCOLS = ['http', 'https', 'mailto', 'tel']

    def __init__(self, templates: Optional[Dict[str, str]] = None):
        self.env = Environment(
            loader=DictLoader(templates or TEMPLATES),
            autoescape=select_autoescape(['html', 'xml']),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            cache_size=50
        )
        self.env.filters['url_encode'] = urllib.parse.quote
        self.env.filters['html_escape'] = html.escape

        self.css_sanitizer = CSSSanitizer(
            allowed_css_properties=[
                'color', 'background-color', 'font-family', 'font-size', 'font-weight',
                'font-style', 'text-align', 'text-decoration', 'margin', 'padding',
                'width', 'height', 'max-width', 'line-height', 'vertical-align'
            ],
            allowed_svg_properties=[]
        )
        self.html_cleaner = bleach.Cleaner(
            tags=self.CONTENT_SAFE_TAGS,
            attributes=self.CONTENT_SAFE_ATTRIBUTES,
            protocols=self.CONTENT_SAFE_PROTOCOLS,
            css_sanitizer=self.css_sanitizer,
            strip=True,
            strip_comments=True
        )

    def render_template(self,
                        name: str,
                        variables: Dict[str, Any],
                        content_type: ContentType = ContentType.MIXED) -> TemplateRenderResult:
        """
        Render a named template to HTML and, for MIXED, a plain-text alternative
        """
        start = time.perf_counter()
        try:
            rendered_html = self.env.get_template(name).render(**variables)
        except TemplateError as e:
            logger.error(f"Template rendering failed for {name}: {e}")
            raise TemplateRenderingError(f"Failed to render {name}: {e}") from e

        text = self.html_to_text(rendered_html) if content_type != ContentType.HTML else None
        if content_type == ContentType.TEXT:
            rendered_html = None

        body = (rendered_html or '') + (text or '')
        return TemplateRenderResult(
            html=rendered_html,
            text=text,
            size_bytes=len(body.encode('utf-8')),
            render_time_ms=(time.perf_counter() - start) * 1000
        )

    def sanitize_html(self, content: Optional[str]) -> Optional[str]:
        """Strip scripts, event handlers and unsafe markup from admin-authored HTML"""
        if content is None:
            return None
        return self.html_cleaner.clean(str(content))

    @staticmethod
    def html_to_text(content: Optional[str]) -> str:
        """Readable plain text from HTML"""
        if not content:
            return ''
        soup = BeautifulSoup(content, 'html.parser')
        for tag in soup(['style', 'script', 'head', 'title']):
            tag.decompose()
        lines = (line.strip() for line in soup.get_text('\n').splitlines())
        return '\n'.join(line for line in lines if line)


template_engine = SecureTemplateEngine()
