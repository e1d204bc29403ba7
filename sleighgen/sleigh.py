"""Serialise a :class:`ProcessorModule` into a Ghidra language directory."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import OutputError
from .pipeline import ProcessorModule
from .registers import Register
from .tokens import InstructionLayout, TokenContainer

logger = logging.getLogger(__name__)

MAX_EXAMPLES = 5
PROGRAM_COUNTER = "pc"

# Punctuation SLEIGH accepts unquoted in a display section.
_BARE_PUNCTUATION = {",", "[", "]", "(", ")", "+", "#"}


def _is_identifier(piece: str) -> bool:
    return piece.startswith('"') or piece[:1].isalnum() or piece[:1] in "_."


def display_pieces(layout: InstructionLayout) -> List[str]:
    pieces: List[str] = []
    for token in layout.entry.operands:
        name = layout.operand_names.get(token)
        if name is not None:
            pieces.append(name)
        elif token in _BARE_PUNCTUATION:
            pieces.append(token)
        else:
            pieces.append('"' + token.replace('"', "") + '"')
    return pieces


def render_display(layout: InstructionLayout) -> str:
    """Join mnemonic and operands, inserting ``^`` between adjacent identifiers."""

    out = layout.entry.mnemonic
    previous_identifier = False
    operands = ""
    for piece in display_pieces(layout):
        identifier = _is_identifier(piece)
        if previous_identifier and identifier:
            operands += "^"
        operands += piece
        previous_identifier = identifier
    if operands:
        out += " " + operands
    return out


class SleighRenderer:
    """Render the ``.slaspec`` text for a processor module."""

    def render(self, module: ProcessorModule) -> str:
        lines: List[str] = []
        lines.extend(self._render_header(module))
        lines.extend(self._render_registers(module))
        for container in module.tokens.containers.values():
            lines.extend(self._render_token(container))
        lines.extend(self._render_attach(module))
        for layout in module.tokens.layouts:
            lines.extend(self._render_constructor(module, layout))
        return "\n".join(lines) + "\n"

    def write(self, module: ProcessorModule, output_path: Path) -> None:
        output_path.write_text(self.render(module), "utf-8")

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _render_header(self, module: ProcessorModule) -> Iterable[str]:
        config = module.config
        size = config.address_size
        yield f"# {config.processor_name} ({config.processor_family})"
        yield f"# {len(module.tokens.layouts)} constructors"
        yield ""
        yield f"define endian={config.endian};"
        yield f"define alignment={config.alignment};"
        yield ""
        yield f"define space ram type=ram_space size={size} default;"
        yield f"define space register type=register_space size={size};"
        yield ""

    def _render_registers(self, module: ProcessorModule) -> Iterable[str]:
        by_size: Dict[int, List[Register]] = {}
        for register in module_registers(module):
            by_size.setdefault(register.byte_size, []).append(register)

        offset = 0
        for size in sorted(by_size, reverse=True):
            if offset % size:
                offset += size - offset % size
            names = " ".join(register.name for register in by_size[size])
            yield f"define register offset=0x{offset:04x} size={size} [ {names} ];"
            offset += size * len(by_size[size])
        yield ""

    def _render_token(self, container: TokenContainer) -> Iterable[str]:
        yield f"define token {container.name} ({container.width})"
        for token_field in container.fields:
            attribute = " signed" if token_field.signed else ""
            yield f"    {token_field.name} = ({token_field.lsb}, {token_field.msb}){attribute}"
        yield ";"
        yield ""

    def _render_attach(self, module: ProcessorModule) -> Iterable[str]:
        emitted = False
        for group in module.attach_groups:
            names = [
                token_field.name
                for token_field in module.tokens.all_fields()
                if token_field.attach_group == group.id
            ]
            if not names:
                continue
            yield f"attach variables [ {' '.join(names)} ] [ {' '.join(group.value_table())} ];"
            emitted = True
        if emitted:
            yield ""

    def _render_constructor(self, module: ProcessorModule, layout: InstructionLayout) -> Iterable[str]:
        config = module.config
        entry = layout.entry
        if not config.omit_opcodes:
            yield f"# opcode: {entry.opcode_text()}"
        if not config.omit_example_instructions:
            for source in entry.sources[:MAX_EXAMPLES]:
                yield f"# example: {source.pattern_text} | {source.text}"
            if len(entry.sources) > MAX_EXAMPLES:
                yield f"# ... {len(entry.sources) - MAX_EXAMPLES} more"
        terms = []
        for constraint in layout.constraints:
            if constraint.value is None:
                terms.append(constraint.field.name)
            else:
                terms.append(f"{constraint.field.name}=0x{constraint.value:x}")
        yield f":{render_display(layout)} is {' & '.join(terms)} {{}}"
        yield ""


def module_registers(module: ProcessorModule) -> List[Register]:
    """Registers to define: those in use plus a program counter."""

    registers = list(module.registers)
    if not any(register.name.lower() == PROGRAM_COUNTER for register in registers):
        registers.append(Register(PROGRAM_COUNTER, module.config.bitness))
    return registers


def _program_counter(module: ProcessorModule) -> str:
    for register in module_registers(module):
        if register.name.lower() == PROGRAM_COUNTER:
            return register.name
    return PROGRAM_COUNTER


def _tree(root: ET.Element) -> ET.ElementTree:
    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    return tree


def build_ldefs(module: ProcessorModule) -> ET.ElementTree:
    config = module.config
    root = ET.Element("language_definitions")
    language = ET.SubElement(
        root,
        "language",
        processor=config.processor_name,
        endian=config.endian,
        size=str(config.bitness),
        variant="default",
        version="1.0",
        slafile=f"{config.processor_name}.sla",
        processorspec=f"{config.processor_name}.pspec",
        id=config.language_id,
    )
    ET.SubElement(language, "description").text = (
        f"{config.processor_name} ({config.processor_family}) generated processor module"
    )
    ET.SubElement(language, "compiler", name="default", spec=f"{config.processor_name}.cspec", id="default")
    return _tree(root)


def build_pspec(module: ProcessorModule) -> ET.ElementTree:
    root = ET.Element("processor_spec")
    ET.SubElement(root, "programcounter", register=_program_counter(module))
    return _tree(root)


def build_cspec(module: ProcessorModule) -> ET.ElementTree:
    size = module.config.address_size
    root = ET.Element("compiler_spec")
    data = ET.SubElement(root, "data_organization")
    ET.SubElement(data, "pointer_size", value=str(size))
    proto_wrapper = ET.SubElement(root, "default_proto")
    prototype = ET.SubElement(
        proto_wrapper, "prototype", name="__stdcall", extrapop="0", stackshift="0"
    )
    ET.SubElement(prototype, "input")
    ET.SubElement(prototype, "output")
    return _tree(root)


def build_opinion(module: ProcessorModule) -> ET.ElementTree:
    root = ET.Element("opinions")
    return _tree(root)


class ProcessorModuleWriter:
    """Write ``<output>/<family>/`` with the manifest and language files."""

    def __init__(self, renderer: Optional[SleighRenderer] = None) -> None:
        self.renderer = renderer or SleighRenderer()

    def write(self, module: ProcessorModule, output_dir: Path) -> Path:
        config = module.config
        module_dir = output_dir / config.processor_family
        languages = module_dir / "data" / "languages"
        stem = config.processor_name
        partial = sorted(width for width in module.tokens.containers if width % 8)
        if partial:
            widths = ", ".join(str(width) for width in partial)
            raise OutputError(f"token widths must be whole bytes, got {widths} bits")
        try:
            languages.mkdir(parents=True, exist_ok=True)
            (module_dir / "Module.manifest").write_text("", "utf-8")
            self.renderer.write(module, languages / f"{stem}.slaspec")
            for suffix, build in (
                (".ldefs", build_ldefs),
                (".pspec", build_pspec),
                (".cspec", build_cspec),
                (".opinion", build_opinion),
            ):
                build(module).write(languages / f"{stem}{suffix}", encoding="utf-8", xml_declaration=True)
        except OSError as exc:
            raise OutputError(f"failed to write processor module to {module_dir}: {exc}") from exc
        logger.info("processor module written to %s", module_dir)
        return module_dir
