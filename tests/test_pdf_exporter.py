from types import SimpleNamespace

import pytest

from workflow import pdf_exporter
from workflow.errors import ExportError


def _plan_and_form(n_questions=3, long_answer=False):
    questions = [{"id": f"q{i}", "title": f"Question {i} <b>&</b>"} for i in range(n_questions)]
    answer = ("Contenu détaillé du cours.\n" * 400) if long_answer else "Réponse"
    responses = [{"question_id": q["id"], "question_title": q["title"], "answer": answer} for q in questions]
    responses[-1]["answer"] = ""
    plan = SimpleNamespace(
        id="p1",
        teacher_name="Marie Curie",
        course_code="INF 101",
        course_name="Programmation",
        session="A2026",
        responses=responses,
        validations=[
            {"question_id": "q0", "status": "Conforme", "positives": ["ok"]},
            {"question_id": "q1", "status": "Statut inconnu", "positives": ["ok"]},
        ],
    )
    return plan, SimpleNamespace(questions=questions)


@pytest.mark.parametrize("teacher,course,expected", [
    ("Marie Curie", "INF 101", "Marie_Curie_INF_101_1700000000000.pdf"),
    ("Éloïse  O'Neil", "MAT-201/A", "lose_ONeil_MAT-201A_1700000000000.pdf"),
    ("", "", "__1700000000000.pdf"),
])
def test_build_pdf_filename(teacher, course, expected):
    assert pdf_exporter.build_pdf_filename(teacher, course, 1700000000000) == expected


def test_render_plan_pdf_produces_pdf_bytes():
    plan, form = _plan_and_form()
    data = pdf_exporter.render_plan_pdf(plan, form)
    assert data.startswith(b"%PDF")


def test_render_spans_several_pages():
    plan, form = _plan_and_form(n_questions=4, long_answer=True)
    data = pdf_exporter.render_plan_pdf(plan, form)
    page_count = data.count(b"/Type /Page") - data.count(b"/Type /Pages")
    assert page_count >= 2


def test_export_plan_stores_file_and_returns_url():
    plan, form = _plan_and_form()
    url = pdf_exporter.export_plan(plan, form)

    assert url.startswith("/uploads/plans/Marie_Curie_INF_101_")
    name = url.rsplit("/", 1)[-1]
    assert (pdf_exporter.EXPORT_DIR / name).read_bytes().startswith(b"%PDF")


def test_export_failure_raises_export_error(monkeypatch):
    def broken_store(data, name):
        raise OSError("disk full")

    monkeypatch.setattr(pdf_exporter, "store_pdf", broken_store)
    plan, form = _plan_and_form()
    with pytest.raises(ExportError):
        pdf_exporter.export_plan(plan, form)
