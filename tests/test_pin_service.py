"""
Tests for the pin service (create/read/update/delete, nearby search, tag listing)
"""

import math

import pytest

from core.errors import PinNotFoundError, PinValidationError
from pins.memory import InMemoryPinTagStore
from pins.models import Pin, Tag
from pins.service import to_pin_view


def _names(view):
    return [tag.name for tag in view.tags]


class TestCreateAndGet:
    async def test_round_trip(self, service):
        created = await service.create_pin("Cafe", "Good espresso", 51.5, -0.12, ["Coffee", " view "])

        fetched = await service.get_pin(created.id)

        assert fetched is not None
        assert fetched.title == "Cafe"
        assert fetched.notes == "Good espresso"
        assert (fetched.latitude, fetched.longitude) == (51.5, -0.12)
        assert _names(fetched) == ["coffee", "view"]
        assert fetched.user_id is None
        assert fetched.created_at is not None
        assert fetched.created_at == fetched.updated_at

    async def test_get_missing_returns_none(self, service):
        assert await service.get_pin(999) is None

    async def test_tags_are_shared_case_insensitively(self, service):
        first = await service.create_pin("A", None, 0.0, 0.0, ["Coffee"])
        second = await service.create_pin("B", None, 1.0, 1.0, ["coffee"])

        assert first.tags[0].id == second.tags[0].id
        assert await service.list_tag_names() == ["coffee"]

    async def test_tags_sorted_in_view(self, service):
        view = await service.create_pin("A", None, 0.0, 0.0, ["zeta", "alpha", "Beta"])
        assert _names(view) == ["alpha", "beta", "zeta"]

    async def test_no_tags(self, service):
        view = await service.create_pin("A", None, 0.0, 0.0, None)
        assert view.tags == []
        assert await service.list_tag_names() == []

    @pytest.mark.parametrize(
        "title, lat, lng",
        [
            ("", 0.0, 0.0),
            ("   ", 0.0, 0.0),
            ("x" * 256, 0.0, 0.0),
            ("ok", 90.5, 0.0),
            ("ok", -91.0, 0.0),
            ("ok", 0.0, 180.5),
            ("ok", 0.0, -181.0),
            ("ok", math.nan, 0.0),
            ("ok", 0.0, math.inf),
        ],
    )
    async def test_invalid_input_is_rejected(self, service, title, lat, lng):
        with pytest.raises(PinValidationError):
            await service.create_pin(title, None, lat, lng, ["tag"])
        assert await service.list_pins() == []
        assert await service.list_tag_names() == []

    async def test_failure_rolls_back_everything(self, service, monkeypatch):
        async def broken_attach(self, pin_id, tag_ids):
            raise RuntimeError("link table unavailable")

        monkeypatch.setattr(InMemoryPinTagStore, "attach", broken_attach)

        with pytest.raises(RuntimeError):
            await service.create_pin("A", None, 0.0, 0.0, ["new-tag"])

        assert await service.list_pins() == []
        assert await service.list_tag_names() == []


class TestProjection:
    def test_tag_sort_is_case_insensitive(self):
        pin = Pin(title="A", latitude=0.0, longitude=0.0, id=1)
        tags = [Tag(name="zeta", id=1), Tag(name="alpha", id=2), Tag(name="Beta", id=3)]

        view = to_pin_view(pin, tags)

        assert _names(view) == ["alpha", "Beta", "zeta"]
        assert [tag.id for tag in view.tags] == [2, 3, 1]


class TestUpdate:
    async def test_tag_diff(self, service, storage):
        created = await service.create_pin("A", None, 0.0, 0.0, ["a", "b", "c"])
        b_id = next(tag.id for tag in created.tags if tag.name == "b")

        updated = await service.update_pin(created.id, "A", None, ["b", "d"])

        assert _names(updated) == ["b", "d"]
        assert next(tag.id for tag in updated.tags if tag.name == "b") == b_id
        # Detached tags are not deleted.
        assert await service.list_tag_names() == ["a", "b", "c", "d"]

        async with storage.unit_of_work(readonly=True) as stores:
            a_tag = await stores.tags.find_by_name_case_insensitive("a")
            assert await stores.links.pin_ids_for_tag(a_tag.id) == []
            assert await stores.links.pin_ids_for_tag(b_id) == [created.id]

    async def test_full_replace_of_fields(self, service):
        created = await service.create_pin("Old", "old notes", 10.0, 20.0, ["x"])

        updated = await service.update_pin(created.id, "New")

        assert updated.title == "New"
        assert updated.notes is None
        assert updated.tags == []
        assert (updated.latitude, updated.longitude) == (10.0, 20.0)
        assert updated.user_id is None

    async def test_timestamps(self, service):
        created = await service.create_pin("A", None, 0.0, 0.0, [])

        updated = await service.update_pin(created.id, "B", "notes", [])

        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    async def test_same_tags_again_is_a_no_op(self, service):
        created = await service.create_pin("A", None, 0.0, 0.0, ["a", "b"])

        updated = await service.update_pin(created.id, "A", None, ["B", "a", "a"])

        assert [tag.id for tag in updated.tags] == [tag.id for tag in created.tags]

    async def test_missing_pin(self, service):
        with pytest.raises(PinNotFoundError) as excinfo:
            await service.update_pin(999, "A", None, ["new"])
        assert excinfo.value.pin_id == 999
        assert await service.list_tag_names() == []

    async def test_blank_title_is_rejected(self, service):
        created = await service.create_pin("A", None, 0.0, 0.0, [])
        with pytest.raises(PinValidationError):
            await service.update_pin(created.id, "  ")


class TestDelete:
    async def test_delete_keeps_tags(self, service, storage):
        created = await service.create_pin("A", None, 0.0, 0.0, ["keep"])

        await service.delete_pin(created.id)

        assert await service.get_pin(created.id) is None
        assert await service.list_tag_names() == ["keep"]
        async with storage.unit_of_work(readonly=True) as stores:
            assert await stores.links.pin_ids_for_tag(created.tags[0].id) == []

    async def test_missing_pin(self, service):
        with pytest.raises(PinNotFoundError):
            await service.delete_pin(999)

    async def test_ids_are_not_reused(self, service):
        first = await service.create_pin("A", None, 0.0, 0.0, [])
        await service.delete_pin(first.id)
        second = await service.create_pin("B", None, 0.0, 0.0, [])
        assert second.id != first.id


class TestList:
    async def test_insertion_order(self, service):
        for title in ["one", "two", "three"]:
            await service.create_pin(title, None, 0.0, 0.0, [])

        pins = await service.list_pins()

        assert [pin.title for pin in pins] == ["one", "two", "three"]

    async def test_tag_names_sorted(self, service):
        await service.create_pin("A", None, 0.0, 0.0, ["pizza", "Bar"])
        await service.create_pin("B", None, 0.0, 0.0, ["arcade", "bar"])

        assert await service.list_tag_names() == ["arcade", "bar", "pizza"]


class TestFindNearby:
    async def test_radius_boundary(self, service):
        await service.create_pin("East", None, 0.0, 1.0, [])

        included = await service.find_nearby(0.0, 0.0, 111_200)
        excluded = await service.find_nearby(0.0, 0.0, 111_000)

        assert [pin.title for pin in included] == ["East"]
        assert excluded == []

    async def test_keeps_scan_order_and_tags(self, service):
        await service.create_pin("far", None, 0.0, 0.5, ["x"])
        await service.create_pin("outside", None, 10.0, 10.0, [])
        await service.create_pin("near", None, 0.0, 0.01, ["y", "a"])

        pins = await service.find_nearby(0.0, 0.0, 100_000)

        assert [pin.title for pin in pins] == ["far", "near"]
        assert _names(pins[1]) == ["a", "y"]

    async def test_empty_store(self, service):
        assert await service.find_nearby(0.0, 0.0, 5_000) == []

    @pytest.mark.parametrize(
        "lat, lng, radius",
        [(0.0, 0.0, -1.0), (0.0, 0.0, math.nan), (95.0, 0.0, 10.0), (0.0, 200.0, 10.0)],
    )
    async def test_invalid_query(self, service, lat, lng, radius):
        with pytest.raises(PinValidationError):
            await service.find_nearby(lat, lng, radius)
