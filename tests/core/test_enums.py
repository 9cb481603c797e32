"""Tests for src/core/enums.py - Core enumerations."""

from core.enums import DIRECTORY_META_TYPES, EntryKind, ExportErrorKind, ModuleStatus, RunState


class TestEntryKind:
    def test_values(self):
        assert EntryKind.FILE == "file"
        assert EntryKind.DIRECTORY == "directory"

    def test_from_meta_type(self):
        for meta_type in DIRECTORY_META_TYPES:
            assert EntryKind.from_meta_type(meta_type) is EntryKind.DIRECTORY
        for meta_type in ("reg", "lnk", "virt", "other", ""):
            assert EntryKind.from_meta_type(meta_type) is EntryKind.FILE


class TestModuleStatus:
    def test_round_trip_from_string(self):
        assert ModuleStatus("ok") is ModuleStatus.OK
        assert ModuleStatus("fail") is ModuleStatus.FAIL
        assert ModuleStatus("stop") is ModuleStatus.STOP

    def test_str(self):
        assert str(ModuleStatus.FAIL) == "fail"


def test_run_states_cover_lifecycle():
    assert [state.value for state in RunState] == [
        "unconfigured", "configured", "running", "succeeded", "failed",
    ]


def test_export_error_kinds():
    assert {kind.value for kind in ExportErrorKind} == {
        "configuration", "resolution", "copy", "directory_creation", "enumeration", "internal",
    }
