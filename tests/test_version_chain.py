"""Tests for version group reads, set-current and version reordering."""

import pytest

from shared.models.errors import NetworkError, NotFoundError, VersionConflictError

ORG = "org-1"


def numbers(versions) -> list[int]:
    return [doc.version_number for doc in versions]


def by_id(versions) -> dict:
    return {doc.id: doc for doc in versions}


class TestListVersions:
    """Test listing the members of a version group"""

    @pytest.mark.asyncio
    async def test_members_sorted_highest_first(self, version_manager, backend, org):
        """Test only group members are returned, newest version first"""
        backend.add_version_group(ORG, "grp", count=3, current=3)
        backend.add_document(ORG, "Unrelated")

        versions = await version_manager.do_list_versions(org, "grp")

        assert numbers(versions) == [3, 2, 1]
        assert {doc.version_group_id for doc in versions} == {"grp"}

    @pytest.mark.asyncio
    async def test_unknown_group_is_empty(self, version_manager, org):
        """Test an unknown group lists no members"""
        assert await version_manager.do_list_versions(org, "missing") == []

    @pytest.mark.asyncio
    async def test_backend_unreachable(self, version_manager, backend, org):
        """Test transport failures surface as NetworkError"""
        backend.fail("documents", "network")

        with pytest.raises(NetworkError):
            await version_manager.do_list_versions(org, "grp")


class TestSetCurrent:
    """Test marking one member as the current version"""

    @pytest.mark.asyncio
    async def test_exactly_one_current_after_set(self, version_manager, backend, org):
        """Test the chosen member becomes the only current version"""
        backend.add_version_group(ORG, "grp", count=3, current=3)

        versions = await version_manager.do_set_current(org, "grp-v1")

        current = [doc.id for doc in versions if doc.is_current_version]
        assert current == ["grp-v1"]

    @pytest.mark.asyncio
    async def test_set_current_refetches_group(self, version_manager, backend, org):
        """Test the returned group reflects the backend after the write"""
        backend.add_version_group(ORG, "grp", count=2, current=2)

        await version_manager.do_set_current(org, "grp-v1")

        assert backend.calls[-1] == f"GET /orgs/{ORG}/documents"

    @pytest.mark.asyncio
    async def test_missing_document(self, version_manager, org):
        """Test an unknown document raises NotFoundError"""
        with pytest.raises(NotFoundError):
            await version_manager.do_set_current(org, "missing")

    @pytest.mark.asyncio
    async def test_document_without_group(self, version_manager, backend, org):
        """Test a document outside any version group raises NotFoundError"""
        backend.add_document(ORG, "Loose", id="loose", versionGroupId=None)

        with pytest.raises(NotFoundError):
            await version_manager.do_set_current(org, "loose")
        assert f"POST /orgs/{ORG}/documents/loose/set-current" not in backend.calls


class TestMoveVersion:
    """Test swapping version numbers inside a group"""

    @pytest.mark.asyncio
    async def test_move_swaps_numbers(self, version_manager, backend, org):
        """Test moving v1 to v3 swaps the two members"""
        backend.add_version_group(ORG, "grp", count=3, current=3)

        versions = await version_manager.do_move_version(org, "grp-v1", 1, 3)

        members = by_id(versions)
        assert members["grp-v1"].version_number == 3
        assert members["grp-v3"].version_number == 1
        assert members["grp-v2"].version_number == 2
        assert numbers(versions) == [3, 2, 1]

    @pytest.mark.asyncio
    async def test_move_round_trip_restores_order(self, version_manager, backend, org):
        """Test moving a version and moving it back restores the original numbering"""
        backend.add_version_group(ORG, "grp", count=3, current=2)
        before = {doc.id: doc.version_number for doc in await version_manager.do_list_versions(org, "grp")}

        await version_manager.do_move_version(org, "grp-v1", 1, 2)
        versions = await version_manager.do_move_version(org, "grp-v1", 2, 1)

        assert {doc.id: doc.version_number for doc in versions} == before

    @pytest.mark.asyncio
    async def test_move_keeps_version_numbers_unique(self, version_manager, backend, org):
        """Test no two members share a number after a move"""
        backend.add_version_group(ORG, "grp", count=4, current=4)

        versions = await version_manager.do_move_version(org, "grp-v2", 2, 4)

        assert sorted(numbers(versions)) == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_equal_versions_rejected_locally(self, version_manager, backend, org):
        """Test moving a version onto itself never reaches the backend"""
        backend.add_version_group(ORG, "grp", count=2, current=2)

        with pytest.raises(VersionConflictError):
            await version_manager.do_move_version(org, "grp-v1", 1, 1)
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_backend_conflict(self, version_manager, backend, org):
        """Test a 409 from the backend raises VersionConflictError"""
        backend.add_version_group(ORG, "grp", count=2, current=2)
        backend.fail("move_version", 409)

        with pytest.raises(VersionConflictError):
            await version_manager.do_move_version(org, "grp-v1", 1, 2)

    @pytest.mark.asyncio
    async def test_unknown_version_number(self, version_manager, backend, org):
        """Test moving to a number outside the group raises NotFoundError"""
        backend.add_version_group(ORG, "grp", count=2, current=2)

        with pytest.raises(NotFoundError):
            await version_manager.do_move_version(org, "grp-v1", 1, 7)


class TestWriteFailures:
    """Test backend failures on version writes surface as NetworkError"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, "network"])
    async def test_set_current_failure(self, version_manager, backend, org, status):
        """Test a failed set-current keeps the previous current version"""
        backend.add_version_group(ORG, "grp", count=2, current=2)
        backend.fail("set_current", status)

        with pytest.raises(NetworkError):
            await version_manager.do_set_current(org, "grp-v1")
        assert backend.documents["grp-v2"]["isCurrentVersion"] is True

    @pytest.mark.asyncio
    async def test_move_version_connection_refused(self, version_manager, backend, org):
        """Test a connect error during move-version raises NetworkError"""
        backend.add_version_group(ORG, "grp", count=2, current=2)
        backend.fail("move_version", "network")

        with pytest.raises(NetworkError):
            await version_manager.do_move_version(org, "grp-v1", 1, 2)
        assert backend.documents["grp-v1"]["versionNumber"] == 1
