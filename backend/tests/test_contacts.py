"""Tests for ContactDirectory and ContactRecord parsing."""

import pytest

from bpou_finder.contacts import ContactDirectory
from bpou_finder.models import ContactRecord


class TestContactRecord:
    def test_from_raw_maps_meeting_info(self):
        record = ContactRecord.from_raw({"meetingInfo": "Mondays"})
        assert record.meeting_info == "Mondays"

    def test_blank_values_are_absent(self):
        record = ContactRecord.from_raw({"website": "  ", "phone": ""})
        assert record.is_empty()

    def test_non_mapping_is_empty(self):
        assert ContactRecord.from_raw(["https://x"]).is_empty()

    def test_unknown_keys_ignored(self):
        record = ContactRecord.from_raw({"website": "https://x", "fax": "123"})
        assert record == ContactRecord(website="https://x")


class TestContactDirectory:
    @pytest.fixture
    def directory(self, bpou_contacts, cd_contacts) -> ContactDirectory:
        d = ContactDirectory()
        d.load(bpou_contacts, cd_contacts)
        return d

    def test_lookup_bpou(self, directory):
        record = directory.lookup_bpou("Saint Paul West")
        assert record.website == "https://spwest.example.org"
        assert record.meeting_info == "Second Tuesday, 7pm"

    def test_lookup_cd(self, directory):
        assert directory.lookup_cd("4").email == "info@cd4.example.org"

    def test_missing_bpou_is_empty_record(self, directory):
        assert directory.lookup_bpou("nonexistent").is_empty()

    def test_missing_cd_is_empty_record(self, directory):
        assert directory.lookup_cd("nonexistent").is_empty()

    def test_none_keys_are_empty_records(self, directory):
        assert directory.lookup_bpou(None).is_empty()
        assert directory.lookup_cd("?").is_empty()

    def test_failed_source_leaves_other_table(self, cd_contacts):
        d = ContactDirectory()
        d.load(None, cd_contacts)
        assert d.bpou == {}
        assert d.lookup_cd("8").website == "https://cd8.example.org"

    def test_wrong_shape_is_empty(self):
        d = ContactDirectory()
        d.load(["not", "a", "mapping"], "nor this")
        assert d.bpou == {} and d.cd == {}
        assert d.lookup_bpou("anything").is_empty()
