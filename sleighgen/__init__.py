"""Public package exports for the SLEIGH processor module generator."""

from .attach import AttachGroup, AttachGroupComputer
from .bits import BitPattern, BitRange
from .combine import combine_duplicates, combine_immediates, combine_registers
from .config import ProcessorConfig
from .diagnostics import CombineConflict, DiagnosticLog
from .errors import ConfigError, GeneratorError, OutputError, ParseError, RegisterInitError
from .instruction import FieldKind, InstructionEntry, OperandField, SourceRecord
from .model import InstructionModel
from .parser import InstructionFileParser
from .pipeline import GenerationPipeline, ProcessorModule
from .registers import Register, RegisterCatalog
from .sleigh import ProcessorModuleWriter, SleighRenderer
from .tokens import TokenField, TokenFieldComputer, TokenTable

__all__ = [
    "AttachGroup",
    "AttachGroupComputer",
    "BitPattern",
    "BitRange",
    "combine_duplicates",
    "combine_immediates",
    "combine_registers",
    "ProcessorConfig",
    "CombineConflict",
    "DiagnosticLog",
    "ConfigError",
    "GeneratorError",
    "OutputError",
    "ParseError",
    "RegisterInitError",
    "FieldKind",
    "InstructionEntry",
    "OperandField",
    "SourceRecord",
    "InstructionModel",
    "InstructionFileParser",
    "GenerationPipeline",
    "ProcessorModule",
    "Register",
    "RegisterCatalog",
    "ProcessorModuleWriter",
    "SleighRenderer",
    "TokenField",
    "TokenFieldComputer",
    "TokenTable",
]
