"""Tests for shipping address handling."""

import pytest
from sqlmodel import select

from app.core.errors import NotFound
from app.models.address import ShippingAddress
from app.services.address import AddressData, AddressService


def _address(**overrides):
    data = {
        "address_line1": "1 Rue des Livres",
        "city": "Montreal",
        "province": "QC",
        "postal_code": "H2X 1Y4",
        "country": "Canada",
    }
    data.update(overrides)
    return AddressData(**data)


@pytest.fixture()
def service(session):
    return AddressService(session)


def _defaults(session, user_id):
    return session.exec(
        select(ShippingAddress).where(ShippingAddress.user_id == user_id, ShippingAddress.is_default == True)  # noqa: E712
    ).all()


class TestSaveAddress:
    def test_first_address_becomes_default(self, service, user):
        address = service.save_address(user.id, _address())
        assert address.is_default is True
        assert address.address_line2 is None

    def test_later_address_is_not_default_unless_requested(self, service, user):
        service.save_address(user.id, _address())
        second = service.save_address(user.id, _address(address_line1="2 Main St"))
        assert second.is_default is False

    def test_new_default_unsets_previous_default(self, service, session, user):
        first = service.save_address(user.id, _address())
        second = service.save_address(user.id, _address(address_line1="2 Main St", is_default=True))

        session.refresh(first)
        assert first.is_default is False
        assert second.is_default is True

    def test_at_most_one_default_after_any_sequence(self, service, session, user, other_user):
        flags = [False, True, False, True, True, False]
        for index, flag in enumerate(flags):
            service.save_address(user.id, _address(address_line1=f"{index} Main St", is_default=flag))
            assert len(_defaults(session, user.id)) == 1

        service.save_address(other_user.id, _address(is_default=True))
        assert len(_defaults(session, user.id)) == 1
        assert len(_defaults(session, other_user.id)) == 1

    def test_blank_required_field_rejected(self):
        with pytest.raises(ValueError):
            _address(city="   ")


class TestOwnershipAndDefaults:
    def test_foreign_address_is_not_found(self, service, user, other_user):
        address = service.save_address(other_user.id, _address())
        with pytest.raises(NotFound):
            service.get_owned_address(user.id, address.id)

    def test_missing_address_is_not_found(self, service, user):
        with pytest.raises(NotFound):
            service.get_owned_address(user.id, 999)

    def test_set_default_switches_default(self, service, session, user):
        first = service.save_address(user.id, _address())
        second = service.save_address(user.id, _address(address_line1="2 Main St"))

        service.set_default(user.id, second.id)

        defaults = _defaults(session, user.id)
        assert [a.id for a in defaults] == [second.id]
        session.refresh(first)
        assert first.is_default is False

    def test_set_default_on_current_default_keeps_it(self, service, session, user):
        first = service.save_address(user.id, _address())
        service.set_default(user.id, first.id)
        assert [a.id for a in _defaults(session, user.id)] == [first.id]

    def test_list_orders_default_first(self, service, user):
        first = service.save_address(user.id, _address())
        second = service.save_address(user.id, _address(address_line1="2 Main St"))
        third = service.save_address(user.id, _address(address_line1="3 Main St"))

        assert [a.id for a in service.list_addresses(user.id)] == [first.id, third.id, second.id]
