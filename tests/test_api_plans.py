from workflow import pdf_exporter


def _answers(form, skip_last=True):
    questions = form["questions"][:-1] if skip_last else form["questions"]
    return [{"question_id": q["id"], "answer": f"Réponse à {q['title']}"} for q in questions]


def _create_plan(client, headers, **body):
    resp = client.post("/plans/", json={"course_code": "INF101", "course_name": "Programmation", **body},
                       headers=headers)
    assert resp.status_code == 201
    return resp.json()


def test_create_plan_binds_to_active_form(client, teacher_headers, teacher, active_form):
    plan = _create_plan(client, teacher_headers)

    assert plan["form_id"] == active_form["id"]
    assert plan["status"] == "draft"
    assert plan["teacher_id"] == teacher.id
    assert plan["teacher_name"] == "Marie Curie"
    assert plan["session"] == "A2026"
    assert [r["question_id"] for r in plan["responses"]] == [q["id"] for q in active_form["questions"]]
    assert plan["pdf_url"] is None


def test_create_plan_requires_active_form(client, teacher_headers):
    resp = client.post("/plans/", json={"course_code": "INF101"}, headers=teacher_headers)
    assert resp.status_code == 404


def test_create_plan_requires_course_code(client, teacher_headers, active_form):
    resp = client.post("/plans/", json={"course_code": "  "}, headers=teacher_headers)
    assert resp.status_code == 422


def test_save_responses_round_trip(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    answers = list(reversed(_answers(active_form)))

    resp = client.put(f"/plans/{plan['id']}/responses", json={"answers": answers}, headers=teacher_headers)
    assert resp.status_code == 200

    reloaded = client.get(f"/plans/{plan['id']}", headers=teacher_headers).json()
    expected = [(a["question_id"], a["answer"]) for a in reversed(answers)] + [(active_form["questions"][-1]["id"], "")]
    assert [(r["question_id"], r["answer"]) for r in reloaded["responses"]] == expected


def test_unknown_question_in_responses(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    resp = client.put(f"/plans/{plan['id']}/responses",
                      json={"answers": [{"question_id": "ghost", "answer": "x"}]}, headers=teacher_headers)
    assert resp.status_code == 422
    assert resp.json()["code"] == "QUESTION_NOT_IN_FORM"


def test_validate_uses_fallback_and_is_cleared_on_change(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    qid = active_form["questions"][0]["id"]

    resp = client.post(f"/plans/{plan['id']}/questions/{qid}/validate",
                       json={"answer": "Cours d'introduction"}, headers=teacher_headers)
    assert resp.status_code == 200
    validation = resp.json()
    assert validation["question_id"] == qid
    assert validation["status"] in ("Conforme", "À améliorer", "Non conforme")
    assert validation["positives"]

    readiness = client.get(f"/plans/{plan['id']}/readiness", headers=teacher_headers).json()
    assert readiness["stats"] == {"answered": 1, "validated": 1, "total": 10}
    assert readiness["can_submit"] is False

    client.put(f"/plans/{plan['id']}/responses",
               json={"answers": [{"question_id": qid, "answer": "Nouvelle réponse"}]}, headers=teacher_headers)
    reloaded = client.get(f"/plans/{plan['id']}", headers=teacher_headers).json()
    assert reloaded["validations"] == []


def test_validate_blank_answer_is_rejected(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    qid = active_form["questions"][0]["id"]
    resp = client.post(f"/plans/{plan['id']}/questions/{qid}/validate", json={}, headers=teacher_headers)
    assert resp.status_code == 400


def test_submit_with_missing_required_answers(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    resp = client.post(f"/plans/{plan['id']}/submit", headers=teacher_headers)

    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "PLAN_INCOMPLETE"
    assert body["missing_question_ids"] == [q["id"] for q in active_form["questions"][:-1]]
    assert client.get(f"/plans/{plan['id']}", headers=teacher_headers).json()["status"] == "draft"


def test_full_review_cycle(client, teacher_headers, admin_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    client.put(f"/plans/{plan['id']}/responses", json={"answers": _answers(active_form)}, headers=teacher_headers)

    # Submit without validations: allowed, unvalidated ids reported
    resp = client.post(f"/plans/{plan['id']}/submit", headers=teacher_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["plan"]["status"] == "submitted"
    assert len(body["unvalidated_question_ids"]) == 10
    pdf_url = body["plan"]["pdf_url"]
    assert pdf_url.startswith("/uploads/plans/Marie_Curie_INF101_")
    assert (pdf_exporter.EXPORT_DIR / pdf_url.rsplit("/", 1)[-1]).exists()

    # Locked for the teacher
    resp = client.put(f"/plans/{plan['id']}/responses", json={"answers": _answers(active_form)},
                      headers=teacher_headers)
    assert resp.status_code == 409

    # Revision needs a comment
    resp = client.post(f"/plans/{plan['id']}/request-revision", json={"comments": " "}, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["code"] == "REVIEW_COMMENT_REQUIRED"

    resp = client.post(f"/plans/{plan['id']}/request-revision",
                       json={"comments": "Préciser les modalités d'évaluation"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "revision"
    assert resp.json()["reviewed_at"] is not None

    # Teacher edits and resubmits
    qid = active_form["questions"][0]["id"]
    resp = client.put(f"/plans/{plan['id']}/responses",
                      json={"answers": [{"question_id": qid, "answer": "Évaluation: examen 50 %, projet 50 %"}]},
                      headers=teacher_headers)
    assert resp.status_code == 200
    resp = client.post(f"/plans/{plan['id']}/submit", headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["plan"]["status"] == "submitted"

    resp = client.post(f"/plans/{plan['id']}/approve", headers=admin_headers)
    assert resp.status_code == 200
    approved = resp.json()
    assert approved["status"] == "approved"
    assert approved["admin_comments"] == "Préciser les modalités d'évaluation"

    # Terminal
    resp = client.post(f"/plans/{plan['id']}/request-revision", json={"comments": "Encore"}, headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json()["code"] == "PLAN_INVALID_TRANSITION"


def test_approve_requires_submitted_plan(client, teacher_headers, admin_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    resp = client.post(f"/plans/{plan['id']}/approve", headers=admin_headers)
    assert resp.status_code == 409


def test_other_teacher_cannot_see_plan(client, teacher_headers, other_teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    resp = client.get(f"/plans/{plan['id']}", headers=other_teacher_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "PERMISSION_DENIED"


def test_teacher_cannot_review(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    resp = client.post(f"/plans/{plan['id']}/approve", headers=teacher_headers)
    assert resp.status_code == 403


def test_delete_only_drafts(client, teacher_headers, active_form):
    draft = _create_plan(client, teacher_headers)
    assert client.delete(f"/plans/{draft['id']}", headers=teacher_headers).status_code == 204
    assert client.get(f"/plans/{draft['id']}", headers=teacher_headers).status_code == 404

    plan = _create_plan(client, teacher_headers)
    client.put(f"/plans/{plan['id']}/responses", json={"answers": _answers(active_form)}, headers=teacher_headers)
    client.post(f"/plans/{plan['id']}/submit", headers=teacher_headers)
    assert client.delete(f"/plans/{plan['id']}", headers=teacher_headers).status_code == 409


def test_course_info_update(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    resp = client.patch(f"/plans/{plan['id']}", json={"course_name": "Programmation avancée"},
                        headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["course_name"] == "Programmation avancée"
    assert resp.json()["course_code"] == "INF101"


def test_course_info_update_rejects_blank_code(client, teacher_headers, active_form):
    plan = _create_plan(client, teacher_headers)
    resp = client.patch(f"/plans/{plan['id']}", json={"course_code": "   "}, headers=teacher_headers)
    assert resp.status_code == 422
    assert client.get(f"/plans/{plan['id']}", headers=teacher_headers).json()["course_code"] == "INF101"


def test_summary_and_admin_filters(client, teacher_headers, other_teacher_headers, admin_headers,
                                   teacher, active_form):
    mine = _create_plan(client, teacher_headers)
    _create_plan(client, teacher_headers, course_code="INF102")
    _create_plan(client, other_teacher_headers, course_code="MAT101", session="H2027")
    client.put(f"/plans/{mine['id']}/responses", json={"answers": _answers(active_form)}, headers=teacher_headers)
    client.post(f"/plans/{mine['id']}/submit", headers=teacher_headers)

    summary = client.get("/plans/mine/summary", headers=teacher_headers).json()
    assert summary == {"draft": 1, "submitted": 1, "approved": 0, "revision": 0, "total": 2}

    assert len(client.get("/plans/", headers=admin_headers).json()) == 3
    by_teacher = client.get("/plans/", params={"teacher_id": teacher.id}, headers=admin_headers).json()
    assert {p["course_code"] for p in by_teacher} == {"INF101", "INF102"}
    submitted = client.get("/plans/", params={"status": "submitted"}, headers=admin_headers).json()
    assert [p["id"] for p in submitted] == [mine["id"]]
    by_session = client.get("/plans/", params={"session": "H2027"}, headers=admin_headers).json()
    assert [p["course_code"] for p in by_session] == ["MAT101"]

    assert client.get("/plans/", headers=teacher_headers).status_code == 403
