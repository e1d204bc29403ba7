import pytest

from sleighgen.errors import RegisterInitError
from sleighgen.registers import Register, RegisterCatalog


def test_baseline_catalog_uses_bitness_for_general_registers():
    catalog = RegisterCatalog.build(bitness=16)

    assert catalog["r3"] == Register("r3", 16)
    assert catalog["ax"].bit_width == 16
    assert catalog["rax"].byte_size == 8
    assert "sp" in catalog


def test_lookup_ignores_case():
    catalog = RegisterCatalog.build()

    assert catalog.lookup("R1") == Register("r1", 32)
    assert catalog.lookup("EAX") == Register("eax", 32)
    assert catalog.lookup("R99") is None
    with pytest.raises(KeyError):
        catalog["nope"]


def test_additional_registers_are_merged():
    catalog = RegisterCatalog.build(["spsr", " vbr "], bitness=64)

    assert catalog.lookup("SPSR") == Register("spsr", 64)
    assert catalog.lookup("vbr") == Register("vbr", 64)
    assert len(catalog) == len(RegisterCatalog.build()) + 2


@pytest.mark.parametrize(
    "additional,message",
    [
        (["R1"], "collides with r1"),
        (["bad name"], "invalid register name"),
        (["1st"], "invalid register name"),
        (["tmp", "TMP"], "collides with tmp"),
    ],
)
def test_build_rejects_invalid_registers(additional, message):
    with pytest.raises(RegisterInitError, match=message):
        RegisterCatalog.build(additional)


def test_build_rejects_non_positive_bitness():
    with pytest.raises(RegisterInitError, match="bitness"):
        RegisterCatalog.build(bitness=0)


def test_catalog_is_read_only():
    catalog = RegisterCatalog.build()

    with pytest.raises(TypeError):
        catalog["r0"] = Register("r0", 8)  # type: ignore[index]


def test_find_used_keeps_listing_spelling_in_first_seen_order():
    catalog = RegisterCatalog.build()

    used = catalog.find_used(["R2", ",", "#", "r2", "SP", "label", 5, "R1"])

    assert used == [Register("R2", 32), Register("SP", 32), Register("R1", 32)]
    assert catalog.describe(used) == "R2 SP R1"
