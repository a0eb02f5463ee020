"""
Tests for the referral ledger.

Covers:
- Referral creation in the default status
- Status transitions and the one-time conversion award
- Tenant and role checks
- Notes and referral codes
"""
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from conftest import balance_of, caller_for
from referhub.errors import Conflict, Forbidden, NotFound
from referhub.referrals.models import Referral
from referhub.rewards.models import PointsTransaction
from referhub.statuses.models import ReferralStatus


class TestCreateReferral:
    """Tests for create_referral"""

    def test_starts_in_default_status(self, referral_service, client_caller, statuses):
        """New referrals start in the default status with no points"""
        referral = referral_service.create_referral(client_caller, "Dana", "dana@example.org", phone="555-0100")

        assert referral.status_id == statuses["Pending"].id
        assert referral.points_awarded == 0
        assert referral.converted_at is None
        assert referral.referred_by_id == client_caller.user_id

    def test_admin_submits_for_member(self, referral_service, admin_caller, client_user):
        """Admins can attribute a referral to another member"""
        referral = referral_service.create_referral(
            admin_caller, "Eli", "eli@example.org", referred_by_id=client_user.id
        )
        assert referral.referred_by_id == client_user.id

    def test_referrer_outside_org(self, referral_service, admin_caller, other_admin):
        """A referrer from another organization is not found"""
        with pytest.raises(NotFound):
            referral_service.create_referral(
                admin_caller, "Eli", "eli@example.org", referred_by_id=other_admin.id
            )

    def test_client_cannot_submit_for_others(self, referral_service, client_caller, second_client):
        with pytest.raises(Forbidden):
            referral_service.create_referral(
                client_caller, "Eli", "eli@example.org", referred_by_id=second_client.id
            )

    def test_no_default_status(self, referral_service, client_caller, database, org):
        """Without a default status creation is a conflict"""
        with database.session() as session:
            session.query(ReferralStatus).filter(ReferralStatus.org_id == org.id).update(
                {ReferralStatus.is_default: False}
            )
        with pytest.raises(Conflict):
            referral_service.create_referral(client_caller, "Dana", "dana@example.org")


class TestListAndVisibility:
    """Tests for list_referrals and get_referral"""

    def test_clients_see_only_their_own(
        self, referral_service, client_caller, admin_caller, second_client
    ):
        mine = referral_service.create_referral(client_caller, "Dana", "dana@example.org")
        referral_service.create_referral(caller_for(second_client), "Finn", "finn@example.org")

        assert [r.id for r in referral_service.list_referrals(client_caller)] == [mine.id]
        assert len(referral_service.list_referrals(admin_caller)) == 2

    def test_other_clients_referral_not_found(self, referral_service, client_caller, second_client):
        theirs = referral_service.create_referral(caller_for(second_client), "Finn", "finn@example.org")
        with pytest.raises(NotFound):
            referral_service.get_referral(client_caller, theirs.id)

    def test_filter_by_status(self, referral_service, client_caller, admin_caller, statuses):
        first = referral_service.create_referral(client_caller, "Dana", "dana@example.org")
        referral_service.create_referral(client_caller, "Finn", "finn@example.org")
        referral_service.transition_status(admin_caller, first.id, statuses["Contacted"].id)

        contacted = referral_service.list_referrals(admin_caller, status_id=statuses["Contacted"].id)
        assert [r.id for r in contacted] == [first.id]

    def test_update_contact(self, referral_service, client_caller):
        referral = referral_service.create_referral(client_caller, "Dana", "dana@example.org")
        updated = referral_service.update_contact(client_caller, referral.id, phone="555-0199")
        assert updated.phone == "555-0199"
        assert updated.name == "Dana"


class TestTransitionStatus:
    """Tests for transition_status"""

    def test_conversion_scenario(
        self, referral_service, org_service, client_caller, admin_caller, client_user, statuses
    ):
        """Converting awards once; converting again changes nothing"""
        org_service.update_settings(admin_caller, conversion_points=50)
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        assert referral.status_id == statuses["Pending"].id
        assert referral.points_awarded == 0

        converted = referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)

        assert converted.status_id == statuses["Converted"].id
        assert converted.points_awarded == 50
        assert converted.converted_at is not None
        assert balance_of(referral_service.db, client_user.id) == (50, 50)

        again = referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)

        assert again.points_awarded == 50
        assert again.converted_at == converted.converted_at
        assert balance_of(referral_service.db, client_user.id) == (50, 50)

    def test_reconverting_after_moving_away(
        self, referral_service, admin_caller, client_caller, client_user, statuses
    ):
        """Leaving and re-entering the conversion status never awards again"""
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)
        moved = referral_service.transition_status(admin_caller, referral.id, statuses["Not Interested"].id)

        assert moved.status_id == statuses["Not Interested"].id
        assert moved.converted_at is not None
        assert balance_of(referral_service.db, client_user.id) == (100, 100)

        referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)
        assert balance_of(referral_service.db, client_user.id) == (100, 100)

    def test_plain_transition_awards_nothing(
        self, referral_service, admin_caller, client_caller, client_user, statuses
    ):
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        moved = referral_service.transition_status(admin_caller, referral.id, statuses["Contacted"].id)

        assert moved.status_id == statuses["Contacted"].id
        assert moved.converted_at is None
        assert balance_of(referral_service.db, client_user.id) == (0, 0)

    def test_conversion_writes_ledger_row(
        self, referral_service, admin_caller, client_caller, client_user, database, statuses
    ):
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)

        with database.session() as session:
            rows = session.query(PointsTransaction).filter(PointsTransaction.user_id == client_user.id).all()
        assert len(rows) == 1
        assert rows[0].amount == 100
        assert rows[0].balance_after == 100
        assert rows[0].operation == "conversion"
        assert rows[0].reference_id == referral.id

    def test_zero_points_program(
        self, referral_service, org_service, admin_caller, client_caller, client_user, statuses
    ):
        """With a zero conversion value the referral converts without a ledger row"""
        org_service.update_settings(admin_caller, conversion_points=0)
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        converted = referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)

        assert converted.converted_at is not None
        assert converted.points_awarded == 0
        assert balance_of(referral_service.db, client_user.id) == (0, 0)

    def test_configured_conversion_status(
        self, referral_service, org_service, admin_caller, client_caller, client_user, statuses
    ):
        """The conversion status comes from organization settings, not from its name"""
        org_service.update_settings(admin_caller, conversion_status_id=statuses["In Progress"].id)
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")

        referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)
        assert balance_of(referral_service.db, client_user.id) == (0, 0)

        referral_service.transition_status(admin_caller, referral.id, statuses["In Progress"].id)
        assert balance_of(referral_service.db, client_user.id) == (100, 100)

    def test_resave_into_newly_designated_status(
        self, referral_service, org_service, admin_caller, client_caller, client_user, statuses
    ):
        """A referral already sitting in the new conversion status is not converted by a re-save"""
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        referral_service.transition_status(admin_caller, referral.id, statuses["Contacted"].id)
        org_service.update_settings(admin_caller, conversion_status_id=statuses["Contacted"].id)

        resaved = referral_service.transition_status(admin_caller, referral.id, statuses["Contacted"].id)

        assert resaved.status_id == statuses["Contacted"].id
        assert resaved.converted_at is None
        assert resaved.points_awarded == 0
        assert balance_of(referral_service.db, client_user.id) == (0, 0)

        # Leaving and re-entering converts
        referral_service.transition_status(admin_caller, referral.id, statuses["Pending"].id)
        converted = referral_service.transition_status(admin_caller, referral.id, statuses["Contacted"].id)
        assert converted.points_awarded == 100
        assert balance_of(referral_service.db, client_user.id) == (100, 100)

    def test_client_forbidden(self, referral_service, client_caller, statuses):
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        with pytest.raises(Forbidden):
            referral_service.transition_status(client_caller, referral.id, statuses["Converted"].id)

    def test_unknown_referral(self, referral_service, admin_caller, statuses):
        with pytest.raises(NotFound):
            referral_service.transition_status(admin_caller, 999999, statuses["Converted"].id)

    def test_referral_of_other_org_forbidden(
        self, referral_service, client_caller, other_admin, statuses
    ):
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        with pytest.raises(Forbidden):
            referral_service.transition_status(caller_for(other_admin), referral.id, statuses["Converted"].id)

    def test_status_of_other_org_not_found(
        self, referral_service, admin_caller, client_caller, database, other_org
    ):
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        with database.session() as session:
            foreign = session.query(ReferralStatus).filter(ReferralStatus.org_id == other_org.id).first()
        with pytest.raises(NotFound):
            referral_service.transition_status(admin_caller, referral.id, foreign.id)

    def test_concurrent_conversions_award_once(
        self, referral_service, admin_caller, client_caller, client_user, database, statuses
    ):
        """Two admins converting at the same time credit the referrer once"""
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        barrier = Barrier(2)

        def convert():
            barrier.wait()
            return referral_service.transition_status(admin_caller, referral.id, statuses["Converted"].id)

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = [future.result() for future in [pool.submit(convert), pool.submit(convert)]]

        assert all(r.status_id == statuses["Converted"].id for r in results)
        assert balance_of(database, client_user.id) == (100, 100)
        with database.session() as session:
            assert session.query(PointsTransaction).count() == 1
            assert session.get(Referral, referral.id).points_awarded == 100


class TestNotes:
    """Tests for referral notes"""

    def test_internal_notes_hidden_from_clients(self, referral_service, client_caller, admin_caller):
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        referral_service.add_note(client_caller, referral.id, "Met at the expo")
        referral_service.add_note(admin_caller, referral.id, "Budget approved", is_internal=True)

        client_notes = referral_service.list_notes(client_caller, referral.id)
        admin_notes = referral_service.list_notes(admin_caller, referral.id)

        assert [n.content for n in client_notes] == ["Met at the expo"]
        assert len(admin_notes) == 2

    def test_clients_cannot_write_internal_notes(self, referral_service, client_caller):
        referral = referral_service.create_referral(client_caller, "Carl", "carl@example.org")
        with pytest.raises(Forbidden):
            referral_service.add_note(client_caller, referral.id, "secret", is_internal=True)


class TestReferralCodes:
    """Tests for referral codes and public submission"""

    def test_code_is_stable(self, referral_service, client_caller):
        """The same user always gets the same code"""
        first = referral_service.get_or_create_code(client_caller)
        second = referral_service.get_or_create_code(client_caller)

        assert first.code == second.code
        assert len(first.code) == 8
        assert first.clicks == 0

    def test_click_tracking(self, referral_service, client_caller):
        code = referral_service.get_or_create_code(client_caller).code
        for _ in range(3):
            tracked = referral_service.track_code_click(code.lower())
        assert tracked.clicks == 3

    def test_unknown_code(self, referral_service):
        with pytest.raises(NotFound):
            referral_service.track_code_click("NOPE2345")
        with pytest.raises(NotFound):
            referral_service.submit_via_code("NOPE2345", "Carl", "carl@example.org")

    def test_submit_via_code_attributes_owner(self, referral_service, client_caller, statuses):
        code = referral_service.get_or_create_code(client_caller).code
        referral = referral_service.submit_via_code(code, "Gina", "gina@example.org")

        assert referral.referred_by_id == client_caller.user_id
        assert referral.org_id == client_caller.org_id
        assert referral.status_id == statuses["Pending"].id
