"""Markdown + LaTeX rendering helpers shared by the Qt client and the API.

Lesson text, questions and options are authored as markdown with inline
``$...$`` and display ``$$...$$`` math. The renderer only produces HTML and
leaves typesetting to MathJax in the displaying view (QWebEngineView on the
desktop, the browser for API consumers).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape

from markdown_it import MarkdownIt

from course_app.core.models import QuizQuestion

_MATHJAX_SCRIPT = (
    "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"
)


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments or full documents."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        return self._markdown.renderInline((markdown_text or "").strip())

    def render_question(
        self,
        question: QuizQuestion,
        selected_index: int | None = None,
        reveal: bool = False,
    ) -> str:
        """Render a question with its lettered options.

        With ``reveal`` the correct option and the explanation are marked,
        which is how completed attempts are reviewed.
        """

        items: list[str] = []
        for index, option in enumerate(question.options):
            classes = ["option"]
            if index == selected_index:
                classes.append("selected")
            if reveal and index == question.correct_answer:
                classes.append("correct")
            elif reveal and index == selected_index:
                classes.append("incorrect")
            letter = chr(ord("A") + index)
            items.append(
                f'<li class="{" ".join(classes)}"><span class="letter">{letter}.</span> '
                f"{self.render_inline(option)}</li>"
            )

        parts = [self.render_fragment(question.question), f'<ol class="options">{"".join(items)}</ol>']
        if reveal and question.explanation:
            parts.append(f'<div class="explanation">{self.render_fragment(question.explanation)}</div>')
        return "\n".join(parts)

    def wrap_with_mathjax(
        self,
        body_html: str,
        title: str = "CourseQt",
        font_size: int = 18,
        text_color: str = "#1f2937",
    ) -> str:
        """Wrap a fragment inside a minimal HTML document that loads MathJax."""

        return f"""<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>{escape(title)}</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      body {{ font-family: 'Segoe UI', system-ui, sans-serif; margin: 0; padding: 1rem; background: transparent; color: {text_color}; }}
      .content-html {{ font-size: {font_size}px; line-height: 1.5; }}
      ol.options {{ list-style: none; padding-left: 0; }}
      li.option {{ padding: 0.35rem 0.5rem; border-radius: 6px; margin-bottom: 0.25rem; }}
      li.selected {{ background: rgba(37, 99, 235, 0.15); }}
      li.correct {{ background: rgba(22, 163, 74, 0.2); }}
      li.incorrect {{ background: rgba(220, 38, 38, 0.2); }}
      .letter {{ font-weight: 600; }}
      .explanation {{ border-left: 3px solid #94a3b8; padding-left: 0.75rem; color: #475569; }}
    </style>
    <script>
      window.MathJax = {{ tex: {{ inlineMath: [['$','$']], displayMath: [['$$','$$']] }}, svg: {{ fontCache: 'global' }} }};
    </script>
    <script defer src=\"{_MATHJAX_SCRIPT}\"></script>
  </head>
  <body>
    <div class=\"content-html\">{body_html}</div>
  </body>
</html>"""

    def render_full_document(self, markdown_text: str, title: str = "CourseQt", font_size: int = 18) -> str:
        """Convenience wrapper to render markdown and embed MathJax."""

        fragment = self.render_fragment(markdown_text)
        return self.wrap_with_mathjax(fragment, title=title, font_size=font_size)


# Shared by the API threads and the Qt thread; rendering does not mutate it.
renderer = MarkdownMathRenderer()
