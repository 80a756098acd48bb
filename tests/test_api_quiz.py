"""
API tests for the /api/quiz endpoints
"""
ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


def start(client, headers=ALICE, **overrides):
    body = {"exam_type": "CCNA", "question_count": 3}
    body.update(overrides)
    return client.post("/api/quiz/start", json=body, headers=headers)


def answer(client, session_id, index, options, headers=ALICE):
    return client.post(
        f"/api/quiz/{session_id}/answer",
        json={"question_index": index, "selected_option_ids": options},
        headers=headers,
    )


class TestStartQuiz:
    def test_start(self, client):
        response = start(client, time_limit=600)

        assert response.status_code == 201
        data = response.json()
        assert data["state"] == "IN_PROGRESS"
        assert data["version"] == 1
        assert data["total_questions"] == 3
        assert len(data["question_ids"]) == 3
        assert data["answers"] == []
        assert data["current_question_index"] == 0
        assert data["seconds_remaining"] == 600
        assert data["expires_at"] is not None
        assert data["config"]["difficulty"] == "MIXED"

    def test_invalid_question_count(self, client):
        response = start(client, question_count=7)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_malformed_body(self, client):
        response = client.post("/api/quiz/start", json={"exam_type": "CCNA"}, headers=ALICE)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_missing_user_header(self, client):
        response = client.post("/api/quiz/start", json={"exam_type": "CCNA", "question_count": 3})

        assert response.status_code == 400

    def test_second_active_session_conflicts(self, client):
        assert start(client).status_code == 201

        response = start(client)

        assert response.status_code == 409
        assert response.json()["error"] == "ACTIVE_SESSION_EXISTS"

    def test_insufficient_questions(self, client):
        response = start(client, exam_type="CCIE", question_count=1)

        assert response.status_code == 422
        assert response.json()["error"] == "INSUFFICIENT_QUESTIONS"


class TestSessionFlow:
    def test_ccna_scenario(self, client):
        session_id = start(client).json()["session_id"]

        first = answer(client, session_id, 0, ["a"])
        assert first.status_code == 200
        assert first.json()["answered_count"] == 1
        assert answer(client, session_id, 1, ["b"]).status_code == 200

        response = client.post(f"/api/quiz/{session_id}/complete", headers=ALICE)

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "COMPLETED"
        assert data["score"]["correct_count"] == 1
        assert data["score"]["percentage"] == 33
        assert data["version"] == 4

    def test_duplicate_answer(self, client):
        session_id = start(client).json()["session_id"]
        answer(client, session_id, 0, ["a"])

        response = answer(client, session_id, 0, ["b"])

        assert response.status_code == 409
        assert response.json()["error"] == "DUPLICATE_ANSWER"

    def test_index_out_of_range(self, client):
        session_id = start(client).json()["session_id"]

        assert answer(client, session_id, 5, ["a"]).status_code == 400

    def test_answer_after_time_limit(self, client, clock):
        session_id = start(client, time_limit=60).json()["session_id"]
        clock.advance(61)

        response = answer(client, session_id, 0, ["a"])

        assert response.status_code == 410
        assert response.json()["error"] == "SESSION_EXPIRED"
        view = client.get(f"/api/quiz/{session_id}", headers=ALICE).json()
        assert view["state"] == "EXPIRED"
        assert view["version"] == 2

        # Terminal now: further commands are state errors
        assert answer(client, session_id, 0, ["a"]).status_code == 409
        assert client.post(f"/api/quiz/{session_id}/complete", headers=ALICE).status_code == 409

    def test_unknown_session(self, client):
        response = client.get("/api/quiz/does-not-exist", headers=ALICE)

        assert response.status_code == 404
        assert response.json()["error"] == "SESSION_NOT_FOUND"

    def test_other_users_session(self, client):
        session_id = start(client).json()["session_id"]

        assert client.get(f"/api/quiz/{session_id}", headers=BOB).status_code == 403
        assert answer(client, session_id, 0, ["a"], headers=BOB).status_code == 403


class TestSessionView:
    def test_view_reports_effective_state(self, client, clock):
        session_id = start(client, time_limit=60).json()["session_id"]
        answer(client, session_id, 0, ["a"])
        clock.advance(30)

        view = client.get(f"/api/quiz/{session_id}", headers=ALICE).json()
        assert view["state"] == "IN_PROGRESS"
        assert view["seconds_remaining"] == 30
        assert view["current_question_index"] == 1
        assert view["answers"][0]["selected_option_ids"] == ["a"]

        clock.advance(31)
        view = client.get(f"/api/quiz/{session_id}", headers=ALICE).json()
        assert view["state"] == "EXPIRED"
        assert view["seconds_remaining"] is None
        # Reading does not write
        assert view["version"] == 2


class TestResultsAndEvents:
    def test_results_after_completion(self, client):
        session_id = start(client).json()["session_id"]
        answer(client, session_id, 0, ["a"])
        client.post(f"/api/quiz/{session_id}/complete", headers=ALICE)

        response = client.get(f"/api/quiz/{session_id}/results", headers=ALICE)

        assert response.status_code == 200
        data = response.json()
        assert data["score"]["percentage"] == 33
        assert len(data["questions"]) == 3
        assert data["questions"][0]["is_correct"] is True
        assert data["questions"][0]["correct_option_ids"] == ["a"]
        assert len(data["questions"][0]["options"]) == 4
        assert data["feedback"]

    def test_results_of_running_session(self, client):
        session_id = start(client).json()["session_id"]

        response = client.get(f"/api/quiz/{session_id}/results", headers=ALICE)

        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_STATE"

    def test_event_log(self, client):
        session_id = start(client).json()["session_id"]
        answer(client, session_id, 2, ["c"])
        client.post(f"/api/quiz/{session_id}/complete", headers=ALICE)

        response = client.get(f"/api/quiz/{session_id}/events", headers=ALICE)

        assert response.status_code == 200
        events = response.json()
        assert [e["event_type"] for e in events] == ["SessionStarted", "AnswerSubmitted", "SessionCompleted"]
        assert [e["version"] for e in events] == [1, 2, 3]
        assert events[1]["payload"]["selected_option_ids"] == ["c"]
        assert events[2]["payload"]["score"] == 0
