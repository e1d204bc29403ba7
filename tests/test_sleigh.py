import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from sleighgen.config import ProcessorConfig
from sleighgen.errors import OutputError
from sleighgen.model import InstructionModel
from sleighgen.parser import InstructionFileParser
from sleighgen.pipeline import GenerationPipeline
from sleighgen.registers import RegisterCatalog
from sleighgen.sleigh import (
    ProcessorModuleWriter,
    SleighRenderer,
    build_ldefs,
    build_pspec,
    module_registers,
)

LISTING = [
    "000000 00000 00001 | ADD R0, R1",
    "000000 00000 00010 | ADD R0, R2",
    "0001 0000 0000 0011 | JMP far label",
]


def build_module(lines=LISTING, **options):
    entries = InstructionFileParser().parse_lines(lines)
    config = ProcessorConfig(**options)
    with InstructionModel(config, RegisterCatalog.build(), entries) as model:
        return GenerationPipeline(model).run()


def test_slaspec_declares_registers_tokens_and_constructors():
    text = SleighRenderer().render(build_module())

    assert "define endian=big;" in text
    assert "define space ram type=ram_space size=4 default;" in text
    assert "define register offset=0x0000 size=4 [ R0 R1 R2 pc ];" in text
    assert "define token instr16 (16)" in text
    assert "    reg_0_4 = (0, 4)" in text
    assert "attach variables [ reg_0_4 ] [ _ R1 R2 " in text
    assert "# opcode: 000000 00000 rrrrr" in text
    assert "# example: 000000 00000 00001 | ADD R0, R1" in text
    assert ':ADD "R0",reg_0_4 is op_5_15=0x0 & reg_0_4 {}' in text
    assert ':JMP "far"^"label" is op_0_15=0x1003 {}' in text


def test_slaspec_comments_can_be_omitted():
    text = SleighRenderer().render(
        build_module(omit_opcodes=True, omit_example_instructions=True)
    )

    assert "# opcode:" not in text
    assert "# example:" not in text


def test_little_endian_configuration():
    module = build_module(endian="little", bitness=16, processor_name="Toy")

    assert "define endian=little;" in SleighRenderer().render(module)
    language = build_ldefs(module).getroot().find("language")
    assert language.get("id") == "Toy:LE:16:default"
    assert language.get("processorspec") == "Toy.pspec"


def test_program_counter_is_always_defined():
    module = build_module()

    assert module_registers(module)[-1].name == "pc"
    counter = build_pspec(module).getroot().find("programcounter")
    assert counter.get("register") == "pc"


def test_writer_creates_module_layout(tmp_path: Path) -> None:
    module_dir = ProcessorModuleWriter().write(build_module(), tmp_path)

    assert module_dir == tmp_path / "MyProcFamily"
    assert (module_dir / "Module.manifest").exists()
    languages = module_dir / "data" / "languages"
    for suffix in (".slaspec", ".ldefs", ".pspec", ".cspec", ".opinion"):
        assert (languages / f"MyProc{suffix}").exists()
    ldefs = ET.parse(languages / "MyProc.ldefs").getroot()
    assert ldefs.tag == "language_definitions"
    assert ldefs.find("language/compiler").get("spec") == "MyProc.cspec"


def test_writer_reports_output_failures(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", "utf-8")

    with pytest.raises(OutputError, match="failed to write"):
        ProcessorModuleWriter().write(build_module(), blocker)


def test_attached_registers_are_all_defined():
    module = build_module(
        [
            "0001 0001 | INC R1",
            "0001 0010 | INC R2",
            "0010 0001 | DEC r1",
            "0010 0010 | DEC r2",
        ]
    )

    text = SleighRenderer().render(module)

    assert "define register offset=0x0000 size=4 [ R1 R2 pc ];" in text
    attach_lines = [line for line in text.splitlines() if line.startswith("attach variables")]
    assert attach_lines == [
        "attach variables [ reg_0_3 ] [ _ R1 R2 _ _ _ _ _ _ _ _ _ _ _ _ _ ];"
    ]


def test_writer_refuses_partial_byte_tokens(tmp_path: Path) -> None:
    module = build_module(["1100 00 | NOP", "1100 01 | HALT"])

    with pytest.raises(OutputError, match="whole bytes, got 6 bits"):
        ProcessorModuleWriter().write(module, tmp_path)

    assert not (tmp_path / "MyProcFamily").exists()
