"""
Email notification tests.

Brevo is replaced with an httpx.MockTransport; every request is inspected.
"""

import json

import httpx

from festdesk.extensions import db
from festdesk.models import EmailLog, EmailTemplate
from festdesk.records import KIND_TIER_PASS
from festdesk.services import notification_service, store


class TestRender:

    def test_placeholders_replaced_and_escaped(self):
        out = notification_service.render("Hi {{ name }}, {{missing}}!", {"name": "<b>Asha</b>"})
        assert out == "Hi &lt;b&gt;Asha&lt;/b&gt;, !"

    def test_members_block_kept_as_html(self):
        out = notification_service.render("{{members}}", {"members": "A<br>B"})
        assert out == "A<br>B"


class TestTemplates:

    def test_defaults_used_until_edited(self, db_session):
        template = notification_service.get_template("approval_tier_pass")
        assert "{{group_id}}" in template["subject"]

    def test_update_and_list(self, db_session):
        notification_service.update_template("rejection", "Sorry {{name}}", "<p>{{rejection_reason}}</p>",
                                             edited_by="admin@festdesk.test")

        assert notification_service.get_template("rejection")["subject"] == "Sorry {{name}}"
        listed = {t["type"]: t for t in notification_service.list_templates()}
        assert listed["rejection"]["last_edited_by"] == "admin@festdesk.test"
        assert set(notification_service.DEFAULT_TEMPLATES) <= set(listed)

    def test_ensure_default_templates_is_idempotent(self, db_session):
        assert notification_service.ensure_default_templates() == len(notification_service.DEFAULT_TEMPLATES)
        assert notification_service.ensure_default_templates() == 0
        assert db.session.query(EmailTemplate).count() == len(notification_service.DEFAULT_TEMPLATES)


class TestSend:

    def test_brevo_request_shape(self, app, db_session, brevo):
        result = notification_service.send_template(
            "asha@example.com", "general", {"name": "Asha", "subject": "Schedule", "message": "See you"},
            group_id="GRP-MAIL01",
        )

        assert result.ok
        assert result.message_id == "<test-message@brevo>"
        request = brevo.requests[0]
        assert str(request.url) == "https://brevo.test/v3/smtp/email"
        assert request.headers["api-key"] == app.config["BREVO_API_KEY"]
        body = json.loads(request.content)
        assert body["to"] == [{"email": "asha@example.com", "name": "Asha"}]
        assert body["subject"] == "Schedule"
        assert "See you" in body["htmlContent"]

        log = db.session.query(EmailLog).one()
        assert (log.status, log.group_id, log.email_type) == ("sent", "GRP-MAIL01", "general")

    def test_missing_api_key(self, app, db_session, brevo, monkeypatch):
        monkeypatch.setitem(app.config, "BREVO_API_KEY", "")

        result = notification_service.send_template("asha@example.com", "general", {"name": "Asha"})

        assert not result.ok
        assert "not configured" in result.error
        assert brevo.requests == []
        assert db.session.query(EmailLog).one().status == "failed"

    def test_transport_error(self, db_session, brevo):
        def _boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        brevo.respond_with(_boom)

        result = notification_service.send_template("asha@example.com", "general", {"name": "Asha"})

        assert not result.ok
        assert "transport error" in result.error

    def test_unknown_template_is_failed_result(self, db_session, brevo):
        result = notification_service.send_template("asha@example.com", "nope", {})
        assert not result.ok
        assert brevo.requests == []

    def test_bulk_continues_past_failures(self, make_tier_pass_group, brevo):
        make_tier_pass_group("GRP-BULK01")
        make_tier_pass_group("GRP-BULK02")
        records = [store.fetch_group(g, KIND_TIER_PASS) for g in ("GRP-BULK01", "GRP-BULK02")]

        def _first_fails(request):
            if len(brevo.requests) == 1:
                return httpx.Response(400, json={"message": "invalid"})
            return httpx.Response(201, json={"messageId": "ok"})

        brevo.respond_with(_first_fails)

        result = notification_service.send_bulk(records, "general", {"subject": "Hi", "message": "Update"})

        assert result["sent"] == 1
        assert result["failed"] == 1
        assert result["failures"][0]["group_id"] == "GRP-BULK01"

    def test_bulk_variables_cannot_replace_member_list(self, make_tier_pass_group, brevo):
        make_tier_pass_group("GRP-BULK03")
        records = [store.fetch_group("GRP-BULK03", KIND_TIER_PASS)]
        notification_service.update_template("general", "{{subject}}", "<p>{{members}}</p><p>{{message}}</p>")

        notification_service.send_bulk(
            records, "general",
            {"subject": "Hi", "members": "<script>x()</script>", "message": "<i>Update</i>"},
        )

        body = json.loads(brevo.requests[0].content)["htmlContent"]
        assert "<script>" not in body
        assert "Asha Rao" in body
        assert "&lt;i&gt;Update&lt;/i&gt;" in body

    def test_email_logs_filter(self, db_session, brevo):
        notification_service.send_template("a@example.com", "general", {}, group_id="GRP-LOG001")
        notification_service.send_template("b@example.com", "general", {}, group_id="GRP-LOG002")

        logs = notification_service.list_email_logs(group_id="GRP-LOG002")

        assert [l["email"] for l in logs] == ["b@example.com"]
