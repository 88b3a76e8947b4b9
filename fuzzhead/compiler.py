import logging
import subprocess
import tempfile
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from algokit_utils import ApplicationSpecification

from fuzzhead.errors import CompilationError

logger = logging.getLogger(__name__)

COMPILATION_TIMEOUT_SECONDS = 120
ARC32_SUFFIX = ".arc32.json"


class CompilationOutcome(Enum):
    SUCCESS = auto()
    COMPILATION_FAILURE = auto()  # puyapy rejected the source
    COMPILER_ERROR = auto()  # puyapy missing or timed out


@dataclass
class CompilationResult:
    outcome: CompilationOutcome
    source: Path
    out_dir: Path
    artifacts: dict[str, Path] = field(default_factory=dict)
    output: str = ""

    @property
    def is_success(self) -> bool:
        return self.outcome is CompilationOutcome.SUCCESS


def load_app_spec(path: Path) -> ApplicationSpecification:
    try:
        return ApplicationSpecification.from_json(Path(path).read_text())
    except (OSError, ValueError, KeyError) as e:
        raise CompilationError(f"Cannot load app spec {path}: {e}") from e


def find_artifact(directory: Path, contract: str) -> Path | None:
    path = Path(directory) / f"{contract}{ARC32_SUFFIX}"
    return path if path.is_file() else None


class PuyaCompiler:
    """Compiles Algorand Python sources with puyapy into ARC-32 app specs.

    Each source is compiled once; later lookups reuse the result.
    """

    def __init__(self, out_dir: Path | None = None, executable: str = "puyapy",
                 timeout: int = COMPILATION_TIMEOUT_SECONDS):
        self.out_dir = Path(out_dir) if out_dir else Path(tempfile.mkdtemp(prefix="fuzzhead-"))
        self.executable = executable
        self.timeout = timeout
        self._results: dict[Path, CompilationResult] = {}

    def compile(self, source: Path) -> CompilationResult:
        source = Path(source).resolve()
        if source in self._results:
            return self._results[source]

        out_dir = self.out_dir / source.stem
        out_dir.mkdir(parents=True, exist_ok=True)
        command = [self.executable, str(source), "--out-dir", str(out_dir), "--output-arc32"]
        logger.info("Compiling %s", source.name)
        logger.debug("Running %s", " ".join(command))

        try:
            process = subprocess.run(command, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError:
            result = CompilationResult(CompilationOutcome.COMPILER_ERROR, source, out_dir,
                                       output=f"{self.executable} not found, install puyapy or pass --no-compile")
        except subprocess.TimeoutExpired:
            result = CompilationResult(CompilationOutcome.COMPILER_ERROR, source, out_dir,
                                       output=f"{self.executable} timed out after {self.timeout}s")
        else:
            output = (process.stdout + process.stderr).strip()
            if process.returncode != 0:
                result = CompilationResult(CompilationOutcome.COMPILATION_FAILURE, source, out_dir, output=output)
            else:
                artifacts = {
                    path.name[:-len(ARC32_SUFFIX)]: path
                    for path in sorted(out_dir.glob(f"*{ARC32_SUFFIX}"))
                }
                result = CompilationResult(CompilationOutcome.SUCCESS, source, out_dir, artifacts, output)

        self._results[source] = result
        return result

    def artifact_for(self, source: Path, contract: str) -> ApplicationSpecification:
        result = self.compile(source)
        if not result.is_success:
            raise CompilationError(f"Compilation of {result.source.name} failed:\n{result.output}")
        if contract not in result.artifacts:
            raise CompilationError(
                f"No ARC-32 app spec produced for {contract} (found: {', '.join(result.artifacts) or 'none'})"
            )
        return load_app_spec(result.artifacts[contract])

