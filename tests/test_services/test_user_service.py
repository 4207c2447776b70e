"""
Tests for user_service, auth_service, and service_type_service.
"""

import pytest

from carhub.models.audit import AuditLog
from carhub.models.service import ServiceType
from carhub.models.user import User
from carhub.services import auth_service, service_type_service, user_service
from carhub.validators import ValidationError

ADMIN_PASSWORD = "admin-pass"  # matches the admin_user fixture


class TestCreateUser:
    def test_password_is_hashed(self, app):
        user = user_service.create_user(username="joao", password="secret1")
        assert user.role == "technician"
        assert user.password_hash != "secret1"
        assert user.check_password("secret1")
        assert "password_hash" not in user.to_dict()

    def test_username_lookup_is_case_insensitive(self, app, admin_user):
        assert user_service.get_user_by_username("ADMIN") == admin_user
        with pytest.raises(ValidationError, match="already exists"):
            user_service.create_user(username="Admin", password="secret1")

    def test_underscore_and_percent_are_literal(self, app):
        user_service.create_user(username="johnxdoe", password="secret1")
        user = user_service.create_user(username="john_doe", password="secret1")
        assert user_service.get_user_by_username("john_doe") == user
        assert user_service.get_user_by_username("%") is None

    def test_short_password_rejected(self, app):
        with pytest.raises(ValidationError) as exc_info:
            user_service.create_user(username="joao", password="123")
        assert exc_info.value.field == "password"

    def test_unknown_role_rejected(self, app):
        with pytest.raises(ValidationError) as exc_info:
            user_service.create_user(username="joao", password="secret1", role="owner")
        assert exc_info.value.field == "role"


class TestUpdateUser:
    def test_partial_update(self, app, admin_user, tech_user):
        user_service.update_user(
            tech_user.id, role="admin", password="new-secret", changed_by=admin_user.id
        )
        assert tech_user.role == "admin"
        assert tech_user.check_password("new-secret")
        assert tech_user.first_name == "Tomas"

    def test_admin_cannot_demote_self(self, app, admin_user):
        with pytest.raises(ValidationError):
            user_service.update_user(
                admin_user.id, role="technician", changed_by=admin_user.id
            )

    def test_admin_cannot_deactivate_self(self, app, admin_user):
        with pytest.raises(ValidationError):
            user_service.update_user(
                admin_user.id, is_active=False, changed_by=admin_user.id
            )

    def test_missing_user(self, app):
        with pytest.raises(ValueError, match="User ID 9 not found."):
            user_service.update_user(9, first_name="X")


class TestDeleteUser:
    def test_unused_user_deleted(self, app, admin_user, tech_user):
        tech_id = tech_user.id
        assert user_service.delete_user(tech_id, deleted_by=admin_user.id) == "deleted"
        assert user_service.get_user_by_id(tech_id) is None

    def test_user_with_orders_deactivated(
        self, app, admin_user, tech_user, make_customer, make_vehicle, make_service
    ):
        make_service(make_vehicle(make_customer()), technician=tech_user)
        outcome = user_service.delete_user(tech_user.id, deleted_by=admin_user.id)
        assert outcome == "deactivated"
        assert tech_user.is_active is False
        assert user_service.get_all_users(include_inactive=False) == [admin_user]

    def test_cannot_delete_self(self, app, admin_user):
        with pytest.raises(ValueError, match="own account"):
            user_service.delete_user(admin_user.id, deleted_by=admin_user.id)


class TestDefaultAdmin:
    def test_created_once(self, app):
        user, created = user_service.ensure_default_admin("root", "root-pass")
        assert created is True
        assert user.is_admin

        again, created = user_service.ensure_default_admin("root", "other-pass")
        assert created is False
        assert again.id == user.id
        assert User.query.count() == 1


class TestAuthenticate:
    def test_valid_credentials_record_login(self, app, admin_user):
        user = auth_service.authenticate(" admin ", ADMIN_PASSWORD)
        assert user.id == admin_user.id
        assert user.last_login is not None
        assert AuditLog.query.filter_by(action_type="LOGIN").count() == 1

    @pytest.mark.parametrize(
        "username, password",
        [
            ("admin", "wrong"),
            ("ghost", ADMIN_PASSWORD),
            ("", ""),
            ("%", ADMIN_PASSWORD),
            ("adm_n", ADMIN_PASSWORD),
        ],
    )
    def test_bad_credentials(self, app, admin_user, username, password):
        with pytest.raises(ValueError, match=auth_service.INVALID_CREDENTIALS):
            auth_service.authenticate(username, password)

    def test_inactive_user_refused(self, app, admin_user, db_session):
        admin_user.is_active = False
        db_session.commit()
        with pytest.raises(ValueError, match=auth_service.INVALID_CREDENTIALS):
            auth_service.authenticate("admin", ADMIN_PASSWORD)

    def test_register_always_creates_technician(self, app):
        user = auth_service.register(username="novo", password="secret1")
        assert user.role == "technician"


class TestServiceTypes:
    def test_create_and_list(self, app, service_types):
        created = service_type_service.create_service_type(
            {"name": "Tire rotation", "default_price": "60,00", "estimated_duration": "20"}
        )
        assert str(created.default_price) == "60.00"
        names = [t.name for t in service_type_service.get_service_types()]
        assert names == ["Car wash", "Oil change", "Tire rotation"]

    def test_duplicate_name_rejected(self, app, service_types):
        with pytest.raises(ValidationError) as exc_info:
            service_type_service.create_service_type({"name": "oil CHANGE"})
        assert exc_info.value.field == "name"

    def test_similar_name_with_wildcard_characters_allowed(self, app, service_types):
        created = service_type_service.create_service_type({"name": "Oil_change"})
        assert created.name == "Oil_change"

    def test_recurring_needs_interval(self, app):
        with pytest.raises(ValidationError) as exc_info:
            service_type_service.create_service_type(
                {"name": "Inspection", "is_recurring": True}
            )
        assert exc_info.value.field == "interval_months"

    def test_deactivate_hides_from_active_list(self, app, service_types):
        wash = service_types["wash"]
        service_type_service.deactivate_service_type(wash.id)
        assert wash.is_active is False
        assert [t.name for t in service_type_service.get_service_types()] == ["Oil change"]
        assert len(service_type_service.get_service_types(include_inactive=True)) == 2

    def test_update_missing(self, app):
        with pytest.raises(ValueError, match="Service type ID 4 not found."):
            service_type_service.update_service_type(4, {"name": "X"})

    def test_seed_is_idempotent(self, app, service_types):
        created = service_type_service.seed_default_service_types()
        assert created == len(service_type_service.DEFAULT_SERVICE_TYPES) - 2
        assert service_type_service.seed_default_service_types() == 0
        assert ServiceType.query.count() == len(service_type_service.DEFAULT_SERVICE_TYPES)
