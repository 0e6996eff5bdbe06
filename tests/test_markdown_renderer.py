from course_app.core.markdown_math_renderer import MarkdownMathRenderer
from factories import make_question


def test_fragment_renders_markdown_and_keeps_math():
    html = MarkdownMathRenderer().render_fragment("**Bold** and $x^2$")

    assert "<strong>Bold</strong>" in html
    assert "$x^2$" in html


def test_empty_fragment_has_placeholder():
    assert MarkdownMathRenderer().render_fragment("  ") == "<p><em>No content provided.</em></p>"


def test_raw_html_is_escaped_by_default():
    html = MarkdownMathRenderer().render_fragment("<script>alert(1)</script>")

    assert "<script>" not in html


def test_question_marks_selection():
    html = MarkdownMathRenderer().render_question(make_question("q1", correct=0), selected_index=2)

    assert html.count('<li class="option') == 4
    assert '<li class="option selected"><span class="letter">C.</span>' in html
    assert "correct" not in html
    assert "explanation" not in html


def test_revealed_question_shows_correctness_and_explanation():
    html = MarkdownMathRenderer().render_question(make_question("q1", correct=0), selected_index=1, reveal=True)

    assert '<li class="option correct">' in html
    assert '<li class="option selected incorrect">' in html
    assert '<div class="explanation">' in html


def test_full_document_loads_mathjax_and_escapes_title():
    html = MarkdownMathRenderer().render_full_document("Hello", title="<Quiz>", font_size=20)

    assert "mathjax" in html
    assert "&lt;Quiz&gt;" in html
    assert "font-size: 20px" in html
    assert "<p>Hello</p>" in html
