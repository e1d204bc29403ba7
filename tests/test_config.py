import pytest

from sleighgen.config import ProcessorConfig
from sleighgen.errors import ConfigError


def test_defaults():
    config = ProcessorConfig().validate()

    assert config.processor_name == "MyProc"
    assert config.processor_family == "MyProcFamily"
    assert config.endian == "big"
    assert (config.alignment, config.bitness) == (1, 32)
    assert config.address_size == 4
    assert config.language_id == "MyProc:BE:32:default"


def test_odd_bitness_rounds_address_size_up():
    config = ProcessorConfig(bitness=20, endian="little")

    assert config.address_size == 3
    assert config.language_id == "MyProc:LE:20:default"


@pytest.mark.parametrize(
    "options",
    [
        {"endian": "BIG"},
        {"alignment": 0},
        {"bitness": 0},
        {"processor_name": ""},
        {"processor_family": "my family"},
    ],
)
def test_validate_rejects_bad_values(options):
    with pytest.raises(ConfigError):
        ProcessorConfig(**options).validate()
