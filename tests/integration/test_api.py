"""HTTP-level tests: routing, authentication and the error envelope."""

from uuid import uuid4

import pytest

from agencyflow import __version__
from agencyflow.db.models import AgencyEmailConfig, SocialDataJob

from tests.conftest import auth_headers, internal_headers

pytestmark = [pytest.mark.db, pytest.mark.integration]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__

    def test_liveness(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_root(self, client):
        assert client.get("/").json()["version"] == __version__


class TestAuthentication:
    def test_missing_token(self, client, world):
        response = client.get(f"/api/campaigns/{world.campaign.id}")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["code"] == "UNAUTHENTICATED"

    def test_garbage_token(self, client, world):
        response = client.get(
            f"/api/campaigns/{world.campaign.id}",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_bad_agency_header(self, client, world):
        headers = auth_headers(world.admin)
        headers["X-Agency-ID"] = "bright-media"
        response = client.get(f"/api/campaigns/{world.campaign.id}", headers=headers)
        assert response.status_code == 422
        assert response.json()["field"] == "X-Agency-ID"


class TestErrorEnvelope:
    def test_other_agency_sees_not_found(self, client, world):
        response = client.get(f"/api/campaigns/{world.campaign.id}", headers=auth_headers(world.outsider))

        assert response.status_code == 404
        assert response.json() == {
            "error": "NotFoundError",
            "detail": f"campaign {world.campaign.id} not found",
            "code": "NOT_FOUND",
            "entity_type": "campaign",
            "entity_id": str(world.campaign.id),
        }

    def test_forbidden(self, client, world):
        response = client.post(
            f"/api/campaigns/{world.campaign.id}/archive",
            json={},
            headers=auth_headers(world.viewer),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_invalid_transition(self, client, world):
        response = client.post(
            f"/api/campaigns/{world.campaign.id}/approve",
            json={},
            headers=auth_headers(world.admin),
        )
        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "INVALID_STATE"
        assert body["current_state"] == "active"


class TestCampaignEndpoints:
    def test_create_and_read(self, client, world):
        response = client.post(
            f"/api/projects/{world.project.id}/campaigns",
            json={
                "name": "Diwali Push",
                "start_date": "2026-10-01",
                "end_date": "2026-11-15",
                "approver_user_ids": [str(world.approver_a.id)],
            },
            headers=auth_headers(world.manager),
        )
        assert response.status_code == 201
        campaign = response.json()
        assert campaign["name"] == "Diwali Push"
        assert campaign["project_id"] == str(world.project.id)

        fetched = client.get(f"/api/campaigns/{campaign['id']}", headers=auth_headers(world.manager))
        assert fetched.status_code == 200
        assert fetched.json()["id"] == campaign["id"]


class TestDeliverableFlow:
    def test_submit_approve_and_client_sign_off(self, client, world):
        created = client.post(
            f"/api/campaigns/{world.campaign.id}/deliverables",
            json={"title": "Launch reel", "deliverable_type": "reel"},
            headers=auth_headers(world.operator),
        )
        assert created.status_code == 201
        deliverable_id = created.json()["id"]

        version = client.post(
            f"/api/deliverables/{deliverable_id}/versions",
            json={"file_name": "launch.mp4", "file_url": "s3://bucket/launch.mp4"},
            headers=auth_headers(world.operator),
        )
        assert version.status_code == 201
        version_id = version.json()["id"]

        submitted = client.post(f"/api/deliverables/{deliverable_id}/submit", headers=auth_headers(world.operator))
        assert submitted.json()["status"] == "submitted"

        for approver in (world.approver_a, world.approver_b):
            response = client.post(
                f"/api/deliverables/{deliverable_id}/approve",
                json={"version_id": version_id, "tier": "campaign"},
                headers=auth_headers(approver),
            )
            assert response.status_code == 200
        assert response.json()["status"] == "client_review"

        contact_headers = auth_headers(contact=world.client_approver)
        queue = client.get("/api/client-portal/pending-approvals", headers=contact_headers)
        assert [d["id"] for d in queue.json()] == [deliverable_id]

        approved = client.post(f"/api/client-portal/deliverables/{deliverable_id}/approve", headers=contact_headers)
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"

        approvals = client.get(f"/api/deliverables/{deliverable_id}/approvals", headers=auth_headers(world.manager))
        assert sorted(a["tier"] for a in approvals.json()) == ["campaign", "campaign", "client"]

    def test_users_cannot_use_the_portal(self, client, world):
        response = client.get("/api/client-portal/pending-approvals", headers=auth_headers(world.admin))
        assert response.status_code == 403

    def test_viewer_contacts_have_no_queue(self, client, world):
        response = client.get(
            "/api/client-portal/pending-approvals", headers=auth_headers(contact=world.client_viewer)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_caption_update(self, client, world):
        deliverable = client.post(
            f"/api/campaigns/{world.campaign.id}/deliverables",
            json={"title": "Story set"},
            headers=auth_headers(world.operator),
        ).json()
        version = client.post(
            f"/api/deliverables/{deliverable['id']}/versions",
            json={"file_name": "story.jpg", "file_url": "s3://bucket/story.jpg"},
            headers=auth_headers(world.operator),
        ).json()

        response = client.put(
            f"/api/deliverable-versions/{version['id']}/caption",
            json={"caption": "Link in bio"},
            headers=auth_headers(world.operator),
        )
        assert response.status_code == 200
        assert response.json()["caption"] == "Link in bio"


class TestClientsAndContacts:
    def test_create_client_in_requested_agency(self, client, world):
        response = client.post(
            "/api/clients",
            json={"name": "Orbit Foods"},
            headers=auth_headers(world.manager, agency=world.agency),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["agency_id"] == str(world.agency.id)
        assert body["account_manager_id"] == str(world.manager.id)

        contact = client.post(
            f"/api/clients/{body['id']}/contacts",
            json={"full_name": "Priya Shah", "email": "priya@orbit.example", "is_client_approver": True},
            headers=auth_headers(world.manager),
        )
        assert contact.status_code == 201
        assert contact.json()["is_client_approver"] is True

        listed = client.get(f"/api/clients/{body['id']}/contacts", headers=auth_headers(world.manager))
        assert [c["full_name"] for c in listed.json()] == ["Priya Shah"]

    def test_duplicate_client_name(self, client, world):
        response = client.post("/api/clients", json={"name": "Acme Beverages"}, headers=auth_headers(world.admin))
        assert response.status_code == 422
        assert response.json()["field"] == "name"

    def test_delete_contact(self, client, world):
        response = client.delete(f"/api/contacts/{world.client_viewer.id}", headers=auth_headers(world.manager))
        assert response.status_code == 204

    def test_deactivate_client(self, client, world):
        response = client.post(f"/api/clients/{world.client.id}/deactivate", headers=auth_headers(world.manager))
        assert response.status_code == 200
        assert response.json()["is_active"] is False


class TestCreatorInvites:
    def test_accept_and_remove(self, client, world):
        cc_id = world.campaign_creator.id
        accepted = client.post(f"/api/campaign-creators/{cc_id}/accept", headers=auth_headers(world.operator))
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

        again = client.post(f"/api/campaign-creators/{cc_id}/decline", headers=auth_headers(world.operator))
        assert again.status_code == 422

        removed = client.delete(f"/api/campaign-creators/{cc_id}", headers=auth_headers(world.operator))
        assert removed.json()["status"] == "removed"


class TestMeteredEndpoints:
    def test_social_fetch_accepted(self, client, world):
        response = client.post(
            f"/api/creators/{world.creator.id}/social-fetch",
            json={"platform": "instagram"},
            headers=auth_headers(world.operator),
        )
        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "pending"
        assert body["tokens_consumed"] == 1
        assert body["new_balance"] == 4

        polled = client.get(f"/api/social-jobs/{body['id']}", headers=auth_headers(world.operator))
        assert polled.status_code == 200

    def test_empty_balance_is_payment_required(self, client, db_session, world):
        world.agency.token_balance = 0
        db_session.flush()

        response = client.post(
            f"/api/campaign-creators/{world.campaign_creator.id}/analytics",
            json={"platform": "instagram"},
            headers=auth_headers(world.operator),
        )
        assert response.status_code == 402
        body = response.json()
        assert body["code"] == "INSUFFICIENT_TOKENS"
        assert body["required"] == 1
        assert body["available"] == 0


class TestInternalEndpoints:
    @pytest.fixture
    def job(self, db_session, world):
        record = SocialDataJob(
            agency_id=world.agency.id, creator_id=world.creator.id, platform="instagram",
            job_type="basic_scrape", status="pending", tokens_consumed=1,
        )
        db_session.add(record)
        db_session.flush()
        return record

    def test_secret_required(self, client, job):
        response = client.post(f"/api/internal/social-jobs/{job.id}/status", json={"status": "running"})
        assert response.status_code == 401

    def test_wrong_secret(self, client, job):
        response = client.post(
            f"/api/internal/social-jobs/{job.id}/status",
            json={"status": "running"},
            headers={"X-Internal-Secret": "guess"},
        )
        assert response.status_code == 401

    def test_user_token_is_not_enough(self, client, world, job):
        response = client.post(
            f"/api/internal/social-jobs/{job.id}/status",
            json={"status": "running"},
            headers=auth_headers(world.admin),
        )
        assert response.status_code == 401

    def test_status_and_posts(self, client, job):
        response = client.post(
            f"/api/internal/social-jobs/{job.id}/status",
            json={"status": "running"},
            headers=internal_headers(),
        )
        assert response.json() == {"id": str(job.id), "status": "running"}

        posts = client.post(
            f"/api/internal/social-jobs/{job.id}/posts",
            json={"posts": [{"platform_post_id": "C1", "metrics": {"likes": 10}}]},
            headers=internal_headers(),
        )
        assert posts.json() == {"id": str(job.id), "stored": 1}

    def test_unknown_snapshot(self, client):
        response = client.post(
            f"/api/internal/analytics-snapshots/{uuid4()}/result",
            json={"payload": {"followers": 10}},
            headers=internal_headers(),
        )
        assert response.status_code == 404


class TestAgencyEndpoints:
    def test_email_config_hides_password(self, client, world):
        saved = client.put(
            f"/api/agencies/{world.agency.id}/email-config",
            json={
                "smtp_host": "smtp.example.com",
                "smtp_username": "mailer",
                "smtp_password": "s3cret",
                "from_email": "campaigns@brightmedia.example",
            },
            headers=auth_headers(world.admin),
        )
        assert saved.status_code == 200

        body = client.get(f"/api/agencies/{world.agency.id}/email-config", headers=auth_headers(world.admin)).json()
        assert body["has_password"] is True
        assert "smtp_password" not in body

    def test_no_config_yet(self, client, db_session, world):
        assert db_session.query(AgencyEmailConfig).count() == 0
        response = client.get(f"/api/agencies/{world.agency.id}/email-config", headers=auth_headers(world.admin))
        assert response.status_code == 200
        assert response.json() is None

    def test_credit_tokens(self, client, world):
        response = client.post(
            f"/api/agencies/{world.agency.id}/tokens",
            json={"amount": 10, "reason": "Top-up"},
            headers=auth_headers(world.admin),
        )
        assert response.json() == {"agency_id": str(world.agency.id), "token_balance": 15}

    def test_credit_must_be_positive(self, client, world):
        response = client.post(
            f"/api/agencies/{world.agency.id}/tokens",
            json={"amount": 0},
            headers=auth_headers(world.admin),
        )
        assert response.status_code == 422
