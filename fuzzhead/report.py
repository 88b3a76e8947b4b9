import json
from collections import Counter
from pathlib import Path

from fuzzhead.SessionSummary import ContractSummary, MethodSummary, SessionSummary

MAX_VALUE_WIDTH = 30
MAX_SEQUENCE_ITEMS = 3
MAX_ARGS_SHOWN = 5


def format_value(value) -> str:
    """Short display form of a generated argument."""
    if isinstance(value, (list, tuple)):
        if len(value) > MAX_SEQUENCE_ITEMS:
            return f"[{len(value)} items]"
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    if isinstance(value, bytes):
        text = "0x" + value.hex()
    elif isinstance(value, str):
        text = repr(value)
    else:
        text = str(value)
    if len(text) > MAX_VALUE_WIDTH:
        return text[:MAX_VALUE_WIDTH - 9] + "..." + text[-6:]
    return text


def format_args(args: list | None) -> str:
    if args is None:
        return "()"
    return "(" + ", ".join(format_value(a) for a in args) + ")"


def summarize(summary: SessionSummary, verbosity: int = 1) -> str:
    lines = []
    for contract in summary.contracts:
        lines.extend(_contract_lines(contract, verbosity))
        lines.append("")

    fuzzed = len(summary.methods)
    lines.append("Summary:")
    lines.append(f"✅ Passed: {summary.passed}")
    lines.append(f"❌ Failed: {summary.failed}")
    lines.append(f"⏭️  Skipped: {summary.skipped} (unsupported parameter types)")
    lines.append(f"📊 Total: {summary.attempted} across {fuzzed} method{'s' if fuzzed != 1 else ''}")
    lines.append(f"🔄 Iterations per method: {summary.iterations}")
    if summary.not_fuzzed:
        lines.append(f"💤 Not fuzzed: {summary.not_fuzzed} (no input parameters)")
    if summary.setup_failures:
        lines.append(f"🛑 Setup failures: {len(summary.setup_failures)} contract(s)")
    if not summary.contracts:
        lines.append("⚠️  No fuzzable contracts found")
    return "\n".join(lines)


def _contract_lines(contract: ContractSummary, verbosity: int) -> list[str]:
    lines = [f"=== {contract.name} ==="]
    if contract.failed_setup:
        lines.append(f"  🛑 Setup failed during {contract.failed_phase}: {contract.error}")
    elif verbosity > 0:
        lines.append(f"  init: {contract.init_status.value}")

    for method in contract.methods:
        lines.extend(_method_lines(method, verbosity))

    if contract.not_fuzzed:
        lines.append(f"  not fuzzed (no input parameters): {', '.join(contract.not_fuzzed)}")
    if not contract.failed_setup and contract.executed == 0:
        lines.append("  ⚠️  No trials were executed for this contract, nothing was tested")
    return lines


def _method_lines(method: MethodSummary, verbosity: int) -> list[str]:
    icon = "❌" if method.failed else ("⏭️ " if method.skipped == method.attempted else "✅")
    readonly = " [readonly]" if method.readonly else ""
    lines = [
        f"  {icon} {method.signature}{readonly}: passed {method.passed}, failed {method.failed}, skipped {method.skipped}"
    ]
    if method.skipped and method.skip_reason and verbosity > 0:
        lines.append(f"      skipped: {method.skip_reason}")

    if verbosity >= 1 and method.failures:
        counts = Counter(f.message for f in method.failures)
        first = {}
        for failure in method.failures:
            first.setdefault(failure.message, failure)
        for message, count in counts.most_common():
            record = first[message]
            lines.append(f"      {count}x (first on iteration {record.iteration}): {message}")

    if verbosity >= 2:
        for failure in method.failures[:MAX_ARGS_SHOWN]:
            lines.append(f"      failing #{failure.iteration}: {format_args(failure.args)}")
        for trial in method.passes[:MAX_ARGS_SHOWN]:
            lines.append(f"      passing #{trial.iteration}: {format_args(trial.args)}")
    return lines


def to_dict(summary: SessionSummary) -> dict:
    """Structured form of the summary, suitable for JSON."""
    return {
        "sources": list(summary.sources),
        "iterations": summary.iterations,
        "execution_time_ms": round(summary.elapsed * 1000),
        "contracts": [_contract_dict(c) for c in summary.contracts],
        "totals": {
            "passed": summary.passed,
            "failed": summary.failed,
            "skipped": summary.skipped,
            "total": summary.attempted,
            "methods": len(summary.methods),
            "not_fuzzed": summary.not_fuzzed,
            "setup_failures": len(summary.setup_failures),
        },
    }


def _contract_dict(contract: ContractSummary) -> dict:
    return {
        "contract": contract.name,
        "phase": contract.phase.value,
        "error": contract.error,
        "init": contract.init_status.value,
        "detected": contract.failed > 0,
        "passed": contract.passed,
        "failed": contract.failed,
        "skipped": contract.skipped,
        "not_fuzzed": list(contract.not_fuzzed),
        "methods": [
            {
                "method": m.method,
                "signature": m.signature,
                "readonly": m.readonly,
                "iterations": m.iterations,
                "passed": m.passed,
                "failed": m.failed,
                "skipped": m.skipped,
                "skip_reason": m.skip_reason,
                "failures": [
                    {"iteration": f.iteration, "message": f.message, "args": [format_value(a) for a in f.args or []]}
                    for f in m.failures
                ],
            }
            for m in contract.methods
        ],
    }


def write_report(summary: SessionSummary, path: Path) -> None:
    with open(path, "w") as f:
        json.dump(to_dict(summary), f, indent=2)
