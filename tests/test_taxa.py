"""
tests/test_taxa.py
==================
Tests for TaxonRegistry and MembershipMask.

The registry used throughout is ["b", "a", "c"], which sorts to
["a", "b", "c"].
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from splitscan._errors import IndexOutOfRange, LabelNotFound, RegistryNotSorted
from splitscan._taxa import MembershipMask, TaxonRegistry


@pytest.fixture
def registry():
    return TaxonRegistry(["b", "a", "c"])


# ======================================================================== #
# TaxonRegistry                                                             #
# ======================================================================== #


class TestTaxonRegistry:
    def test_sort_orders_labels(self, registry):
        registry.sort()
        assert registry.labels == ("a", "b", "c")
        assert list(registry) == ["a", "b", "c"]

    def test_sort_returns_self(self, registry):
        assert registry.sort() is registry

    def test_sort_is_idempotent(self, registry):
        registry.sort()
        registry.sort()
        assert registry.labels == ("a", "b", "c")
        assert registry.is_sorted

    def test_find_label_index(self, registry):
        registry.sort()
        assert registry.find_label_index("a") == 0
        assert registry.find_label_index("b") == 1
        assert registry.find_label_index("c") == 2

    def test_find_missing_label(self, registry):
        registry.sort()
        with pytest.raises(LabelNotFound) as excinfo:
            registry.find_label_index("z")
        assert excinfo.value.label == "z"

    def test_label_not_found_is_key_error(self, registry):
        registry.sort()
        with pytest.raises(KeyError):
            registry.find_label_index("z")

    def test_lookup_before_sort(self, registry):
        with pytest.raises(RegistryNotSorted):
            registry.find_label_index("a")

    def test_make_mask_before_sort(self, registry):
        with pytest.raises(RegistryNotSorted):
            registry.make_mask(0)

    def test_duplicates_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            TaxonRegistry(["a", "b", "a"])

    def test_size_and_len(self, registry):
        assert registry.size() == 3
        assert len(registry) == 3

    def test_contains(self, registry):
        assert "a" in registry
        registry.sort()
        assert "c" in registry
        assert "z" not in registry

    def test_getitem(self, registry):
        registry.sort()
        assert registry[1] == "b"

    def test_empty_registry(self):
        reg = TaxonRegistry([]).sort()
        assert reg.size() == 0
        with pytest.raises(LabelNotFound):
            reg.find_label_index("a")

    def test_equality(self, registry):
        assert registry.sort() == TaxonRegistry(["c", "a", "b"]).sort()
        assert registry != TaxonRegistry(["a", "b"]).sort()


class TestMakeMask:
    def test_lineage_mask(self, registry):
        registry.sort()
        mask = registry.make_mask(0)
        assert mask.size_in_bits() == 3
        assert mask[0] == 0b111

    def test_query_mask_offset(self, registry):
        registry.sort()
        mask = registry.make_mask(2)
        assert mask.size_in_bits() == 5
        assert [mask.extract_tip_state(i) for i in range(5)] == [0, 0, 1, 1, 1]

    def test_negative_offset(self, registry):
        registry.sort()
        with pytest.raises(IndexOutOfRange):
            registry.make_mask(-1)

    def test_mask_across_word_boundary(self):
        reg = TaxonRegistry([f"t{i:02d}" for i in range(10)]).sort()
        mask = reg.make_mask(30)
        assert mask.size_in_bits() == 40
        assert mask.size_in_elements() == 2
        assert mask[0] == 0xC0000000
        assert mask[1] == 0xFF


# ======================================================================== #
# MembershipMask                                                            #
# ======================================================================== #


class TestMembershipMask:
    def test_starts_clear(self):
        mask = MembershipMask(40)
        assert list(mask) == [0, 0]

    def test_set_bits_full(self):
        mask = MembershipMask(33)
        mask.set_bits(0)
        assert mask[0] == 0xFFFFFFFF
        assert mask[1] == 1

    def test_set_bits_at_end_is_noop(self):
        mask = MembershipMask(5)
        mask.set_bits(5)
        assert mask[0] == 0

    def test_set_bits_out_of_range(self):
        mask = MembershipMask(5)
        with pytest.raises(IndexOutOfRange):
            mask.set_bits(6)

    def test_extract_out_of_range(self):
        mask = MembershipMask(5)
        with pytest.raises(IndexOutOfRange):
            mask.extract_tip_state(5)

    def test_zero_length(self):
        mask = MembershipMask(0)
        assert mask.size_in_bits() == 0
        assert mask.size_in_elements() == 0
        assert len(mask) == 0

    def test_words_are_read_only(self):
        mask = MembershipMask(8)
        with pytest.raises(ValueError):
            mask.words[0] = 1

    def test_words_dtype(self):
        assert MembershipMask(8).words.dtype == np.uint32
