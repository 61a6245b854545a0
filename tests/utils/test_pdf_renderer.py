from types import SimpleNamespace

import pytest

from app.utils import pdf_renderer

from conftest import create_paper


def _row(order_index, marks, co, text="Question"):
    return SimpleNamespace(order_index=order_index, marks=marks, co=co, question_text=text, rbt="R", pi="1.1.1")


def test_sections_grouped_by_marks_and_sorted_by_module():
    rows = [
        _row(0, 5, "CO2"),
        _row(1, 2, "CO3"),
        _row(2, 2, "CO1"),
        _row(3, 10, "CO1"),
        _row(4, 5, "CO1"),
        _row(5, 2, ""),
    ]

    sections = pdf_renderer.group_into_sections(rows)

    assert [(label, marks) for label, marks, _ in sections] == [("A", 2), ("B", 5), ("C", 10)]
    assert [r.co for r in sections[0][2]] == ["CO1", "CO3", ""]
    assert [r.co for r in sections[1][2]] == ["CO1", "CO2"]


def test_sections_keep_paper_order_within_module():
    rows = [_row(1, 2, "CO1", "second"), _row(0, 2, "CO1", "first")]
    (_, _, section_rows), = pdf_renderer.group_into_sections(rows)
    assert [r.question_text for r in section_rows] == ["first", "second"]


def test_empty_paper_has_no_sections():
    assert pdf_renderer.group_into_sections([]) == []


@pytest.mark.parametrize("exam_type", ["ISE", "ESE"])
def test_render_paper_pdf(exam_type):
    paper = create_paper(question_ids=[1, 2, 3])
    paper.exam_type = exam_type
    paper.questions[0].question_text = "Compare <b> & <i> tags"

    pdf_bytes = pdf_renderer.render_paper_pdf(paper, institution_name="Test Institute")

    assert pdf_bytes.startswith(b"%PDF")
    assert len(pdf_bytes) > 1000


def test_exam_type_key_defaults_to_ise():
    assert pdf_renderer._exam_type_key(None) == "ISE"
    assert pdf_renderer._exam_type_key("ese") == "ESE"
    assert pdf_renderer._exam_type_key("unknown") == "ISE"


def test_section_table_keeps_plain_cells_literal():
    row = SimpleNamespace(order_index=0, marks=5, co="CO<1>", question_text="Is 1 < 2 & 3 > 2?", rbt="AP", pi="1&2")

    table = pdf_renderer._section_table([row], 4, pdf_renderer.get_styles())

    serial, text, co, rbt, pi, marks = table._cellvalues[1]
    assert (serial, co, rbt, pi, marks) == ("4", "CO<1>", "AP", "1&2", "5")
    assert text.getPlainText() == "Is 1 < 2 & 3 > 2?"
