import pytest
from fastapi.testclient import TestClient

from placeup.core.security import create_access_token
from placeup.main import create_app
from placeup.models.user import UserRole

API = "/api/v1"


@pytest.fixture
def client(monkeypatch, settings, engine):
    """테스트 설정(SQLite 파일)으로 만든 앱 클라이언트 - Settings는 환경변수에서 읽음"""
    monkeypatch.setenv("DATABASE_URL", settings.DATABASE_URL)
    monkeypatch.setenv("SECRET_KEY", settings.SECRET_KEY)
    monkeypatch.setenv("AUTH_TOKEN", settings.AUTH_TOKEN)
    monkeypatch.setenv("URL_CHECK_MODE", "stub")
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    app.container.repositories.engine().dispose()


@pytest.fixture
def auth(settings):
    def _headers(user_id: int, acting_as: int = None) -> dict:
        token = create_access_token({"id": user_id}, settings)
        headers = {"Authorization": f"Bearer {token}"}
        if acting_as is not None:
            headers["X-Acting-As"] = str(acting_as)
        return headers

    return _headers


@pytest.fixture
def funded(seed, owner_id):
    seed.pricing(50)
    seed.fund(owner_id, 500)


def _submit(client, auth, owner_id, place_id, n=1):
    response = client.post(
        f"{API}/receipts/place/{place_id}",
        json={"items": [{"review_text": f"리뷰 {i}"} for i in range(n)]},
        headers=auth(owner_id),
    )
    assert response.status_code == 200, response.text
    return [r["id"] for r in response.json()["data"]["reviews"]]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "ok"

    def test_response_carries_generated_request_id(self, client):
        response = client.get("/health")

        request_id = response.headers["X-Request-Id"]
        assert len(request_id) == 32

    def test_incoming_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-Id": "trace-abc"})

        assert response.headers["X-Request-Id"] == "trace-abc"

    def test_error_response_keeps_request_id(self, client):
        response = client.get(
            f"{API}/points/balance", headers={"X-Request-Id": "trace-401"}
        )

        assert response.status_code == 401
        assert response.headers["X-Request-Id"] == "trace-401"


class TestAuth:
    def test_missing_token(self, client):
        response = client.get(f"{API}/points/balance")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"

    def test_invalid_token(self, client):
        response = client.get(
            f"{API}/points/balance", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    def test_inactive_user(self, client, seed, auth):
        user_id = seed.user(status="inactive")

        response = client.get(f"{API}/points/balance", headers=auth(user_id))

        assert response.status_code == 401

    def test_developer_can_act_as_user(self, client, seed, auth, owner_id):
        developer_id = seed.user(UserRole.DEVELOPER)
        seed.fund(owner_id, 300)

        response = client.get(
            f"{API}/points/balance", headers=auth(developer_id, acting_as=owner_id)
        )

        assert response.status_code == 200
        balance = response.json()["data"]["balance"]
        assert balance["user_id"] == owner_id
        assert balance["available_points"] == 300

    def test_non_developer_cannot_act_as(self, client, auth, admin_id, owner_id):
        response = client.get(
            f"{API}/points/balance", headers=auth(admin_id, acting_as=owner_id)
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_acting_as_inactive_user(self, client, seed, auth):
        developer_id = seed.user(UserRole.DEVELOPER)
        inactive_id = seed.user(status="inactive")

        response = client.get(
            f"{API}/points/balance", headers=auth(developer_id, acting_as=inactive_id)
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_acting_as_unknown_user(self, client, seed, auth):
        developer_id = seed.user(UserRole.DEVELOPER)

        response = client.get(
            f"{API}/points/balance", headers=auth(developer_id, acting_as=9999)
        )

        assert response.status_code == 404


class TestReceiptRoutes:
    def test_submit_and_approve(self, client, seed, auth, owner_id, place_id, admin_id, funded):
        # Given
        review_id = _submit(client, auth, owner_id, place_id, n=2)[0]

        # When
        response = client.post(
            f"{API}/receipts/{review_id}/approve", headers=auth(admin_id)
        )

        # Then
        assert response.status_code == 200
        review = response.json()["data"]["review"]
        assert review["point_status"] == "approved"
        assert review["review_status"] == "awaiting_post"

        balance = seed.balance(owner_id)
        assert balance.available_points == 400
        assert balance.pending_points == 50
        assert balance.total_spent == 50

    def test_double_approve_conflict(self, client, auth, owner_id, place_id, admin_id, funded):
        review_id = _submit(client, auth, owner_id, place_id)[0]
        client.post(f"{API}/receipts/{review_id}/approve", headers=auth(admin_id))

        response = client.post(f"{API}/receipts/{review_id}/approve", headers=auth(admin_id))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NOT_PENDING"

    def test_approve_requires_admin(self, client, auth, owner_id, place_id, funded):
        review_id = _submit(client, auth, owner_id, place_id)[0]

        response = client.post(f"{API}/receipts/{review_id}/approve", headers=auth(owner_id))

        assert response.status_code == 403

    def test_reject_without_body(self, client, seed, auth, owner_id, place_id, admin_id, funded):
        review_id = _submit(client, auth, owner_id, place_id)[0]

        response = client.post(f"{API}/receipts/{review_id}/reject", headers=auth(admin_id))

        assert response.status_code == 200
        assert response.json()["data"]["review"]["point_status"] == "rejected"
        assert seed.balance(owner_id).available_points == 500

    def test_insufficient_funds(self, client, seed, auth, owner_id, place_id):
        seed.pricing(50)
        seed.fund(owner_id, 30)

        response = client.post(
            f"{API}/receipts/place/{place_id}",
            json={"items": [{"review_text": "리뷰"}]},
            headers=auth(owner_id),
        )

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "INSUFFICIENT_FUNDS"

    def test_validation_error_is_invalid_input(self, client, auth, owner_id, place_id, funded):
        response = client.post(
            f"{API}/receipts/place/{place_id}", json={"commit": True}, headers=auth(owner_id)
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_cancel_by_other_user(self, client, seed, auth, owner_id, place_id, funded):
        review_id = _submit(client, auth, owner_id, place_id)[0]

        response = client.post(f"{API}/receipts/{review_id}/cancel", headers=auth(seed.user()))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_OWNER"

    def test_url_and_deletion_flow(self, client, auth, owner_id, place_id, admin_id, funded):
        review_id = _submit(client, auth, owner_id, place_id)[0]
        client.post(f"{API}/receipts/{review_id}/approve", headers=auth(admin_id))

        response = client.post(
            f"{API}/receipts/{review_id}/url",
            json={"url": "https://m.place.naver.com/review/1"},
            headers=auth(owner_id),
        )
        assert response.json()["data"]["review"]["review_status"] == "posted"

        response = client.post(f"{API}/receipts/{review_id}/check-url", headers=auth(owner_id))
        assert response.status_code == 200

        response = client.post(
            f"{API}/receipts/{review_id}/request-delete",
            json={"reason": "업체 요청"},
            headers=auth(owner_id),
        )
        assert response.status_code == 200

        response = client.get(f"{API}/receipts/admin/delete-requests", headers=auth(admin_id))
        assert response.json()["data"]["total_count"] == 1

        response = client.post(
            f"{API}/receipts/{review_id}/approve-delete", headers=auth(admin_id)
        )
        assert response.json()["data"]["review"]["review_status"] == "deleted_by_request"

    def test_admin_sets_review_status(self, client, auth, owner_id, place_id, admin_id, funded):
        review_id = _submit(client, auth, owner_id, place_id)[0]
        client.post(f"{API}/receipts/{review_id}/approve", headers=auth(admin_id))

        response = client.put(
            f"{API}/receipts/{review_id}/review-status",
            json={"review_status": "expired"},
            headers=auth(admin_id),
        )

        assert response.status_code == 200
        assert response.json()["data"]["review"]["review_status"] == "expired"

    def test_pending_list_and_detail(self, client, auth, owner_id, place_id, admin_id, funded):
        review_id = _submit(client, auth, owner_id, place_id)[0]

        pending = client.get(f"{API}/receipts/admin/pending", headers=auth(admin_id))
        detail = client.get(f"{API}/receipts/{review_id}", headers=auth(owner_id))
        by_place = client.get(f"{API}/receipts/place/{place_id}", headers=auth(owner_id))

        assert pending.json()["data"]["total_count"] == 1
        assert detail.json()["data"]["review"]["id"] == review_id
        assert by_place.json()["data"]["total_count"] == 1

    def test_edit_draft_then_submit(self, client, seed, auth, owner_id, place_id, funded):
        response = client.post(
            f"{API}/receipts/place/{place_id}",
            json={"items": [{"review_text": "초안"}], "commit": False},
            headers=auth(owner_id),
        )
        draft_id = response.json()["data"]["reviews"][0]["id"]

        edited = client.put(
            f"{API}/receipts/{draft_id}",
            json={"review_text": "완성본", "images": ["https://img/a.jpg"]},
            headers=auth(owner_id),
        )

        assert edited.status_code == 200, edited.text
        review = edited.json()["data"]["review"]
        assert review["review_text"] == "완성본"
        assert review["images"] == ["https://img/a.jpg"]
        assert review["point_status"] == "draft"

        submitted = client.post(f"{API}/receipts/{draft_id}/submit", headers=auth(owner_id))
        assert submitted.json()["data"]["review"]["review_text"] == "완성본"

        locked = client.put(
            f"{API}/receipts/{draft_id}", json={"review_text": "제출 후 수정"}, headers=auth(owner_id)
        )
        assert locked.status_code == 409
        assert locked.json()["error"]["code"] == "INVALID_STATE"
        assert seed.review(draft_id).review_text == "완성본"

    def test_admin_lists_all_reviews(self, client, auth, owner_id, place_id, admin_id, funded):
        ids = _submit(client, auth, owner_id, place_id, n=2)
        client.post(f"{API}/receipts/{ids[0]}/approve", headers=auth(admin_id))

        everything = client.get(f"{API}/receipts/admin/all", headers=auth(admin_id))
        approved = client.get(
            f"{API}/receipts/admin/all",
            params={"point_status": "approved"},
            headers=auth(admin_id),
        )
        forbidden = client.get(f"{API}/receipts/admin/all", headers=auth(owner_id))

        assert everything.json()["data"]["total_count"] == 2
        assert [r["id"] for r in approved.json()["data"]["reviews"]] == [ids[0]]
        assert forbidden.status_code == 403

    def test_unknown_review(self, client, auth, admin_id):
        response = client.get(f"{API}/receipts/9999", headers=auth(admin_id))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestPointRoutes:
    def test_adjust_and_transactions(self, client, auth, admin_id, owner_id):
        response = client.post(
            f"{API}/points/adjust",
            json={"user_id": owner_id, "amount": 700, "description": "프로모션"},
            headers=auth(admin_id),
        )
        assert response.status_code == 200
        assert response.json()["data"]["new_balance"] == 700

        response = client.get(
            f"{API}/points/transactions",
            params={"transaction_type": "admin_add"},
            headers=auth(owner_id),
        )
        data = response.json()["data"]
        assert data["total_count"] == 1
        assert data["transactions"][0]["amount"] == 700

    def test_adjust_requires_admin(self, client, auth, owner_id):
        response = client.post(
            f"{API}/points/adjust",
            json={"user_id": owner_id, "amount": 700, "description": "셀프 지급"},
            headers=auth(owner_id),
        )

        assert response.status_code == 403

    def test_limit_out_of_range(self, client, auth, owner_id):
        response = client.get(
            f"{API}/points/transactions", params={"limit": 500}, headers=auth(owner_id)
        )

        assert response.status_code == 400


class TestPointRequestRoutes:
    def test_request_and_approve(self, client, seed, auth, admin_id):
        distributor_id = seed.user(UserRole.DISTRIBUTOR)

        response = client.post(
            f"{API}/point-requests",
            json={"requested_amount": 2000, "purpose": "신규 광고주 대상 체험 포인트"},
            headers=auth(distributor_id),
        )
        assert response.status_code == 200
        request_id = response.json()["data"]["request"]["id"]

        response = client.patch(
            f"{API}/point-requests/{request_id}/review",
            json={"status": "approved"},
            headers=auth(admin_id),
        )
        assert response.status_code == 200
        assert response.json()["data"]["request"]["status"] == "approved"
        assert seed.balance(distributor_id).available_points == 2000

    def test_invalid_review_status(self, client, auth, admin_id):
        response = client.patch(
            f"{API}/point-requests/1/review", json={"status": "maybe"}, headers=auth(admin_id)
        )

        assert response.status_code == 400


class TestBatchRoutes:
    def test_scheduler_token(self, client, seed, auth, owner_id, place_id, funded):
        seed.setting("auto_refund_days", "7")
        _submit(client, auth, owner_id, place_id)

        response = client.post(
            f"{API}/batch/auto-refund",
            headers={"Authorization": "Bearer scheduler-token"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["auto_refund_days"] == 7
        assert data["processed"] == 0

    def test_wrong_scheduler_token(self, client):
        response = client.post(
            f"{API}/batch/auto-refund",
            headers={"Authorization": "Bearer scheduler-tokeX"},
        )

        assert response.status_code == 401

    def test_admin_token(self, client, seed, auth, admin_id):
        seed.setting("auto_refund_days", "7")

        response = client.post(f"{API}/batch/auto-refund", headers=auth(admin_id))

        assert response.status_code == 200

    def test_regular_user_forbidden(self, client, auth, owner_id):
        response = client.post(f"{API}/batch/auto-refund", headers=auth(owner_id))

        assert response.status_code == 403

    def test_missing_setting(self, client, auth, admin_id):
        response = client.post(f"{API}/batch/auto-refund", headers=auth(admin_id))

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CONFIG_MISSING"
