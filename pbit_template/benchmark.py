"""
Bulk generation benchmark.

Builds one template per scenario document and records wall time, CPU time,
Python memory delta and output size for each run.
"""
import json
import logging
import os
import platform
import sys
import time
import tracemalloc
from datetime import datetime, timezone
from pathlib import Path

from pbit_template.config import GeneratorConfig
from pbit_template.errors import PbitGenerationError
from pbit_template.loader import list_scenarios, load_scenario
from pbit_template.pipeline import generate_package

_log = logging.getLogger("pbit_template.benchmark")


def benchmark_scenario(name: str, project_data, out_path: Path, config, logger) -> dict:
    """Time one generation run.

    memoryDeltaMB is the traced peak during the run minus the traced size at
    its start, so it reports the high-water mark rather than what is retained.
    """
    tracemalloc.start()
    try:
        mem_start = tracemalloc.get_traced_memory()[0]
        cpu_start = os.times()
        t0 = time.perf_counter()
        try:
            result = generate_package(project_data, out_path, config=config, logger=logger)
        except (PbitGenerationError, OSError, ValueError) as exc:
            return {"scenario": name, "error": str(exc)}
        t1 = time.perf_counter()
        mem_peak = tracemalloc.get_traced_memory()[1]
    finally:
        tracemalloc.stop()
    cpu_end = os.times()
    return {
        "scenario": name,
        "durationMs": round((t1 - t0) * 1000, 2),
        "cpuUserMs": round((cpu_end.user - cpu_start.user) * 1000, 2),
        "cpuSystemMs": round((cpu_end.system - cpu_start.system) * 1000, 2),
        "memoryDeltaMB": round((mem_peak - mem_start) / (1024 * 1024), 2),
        "outputSizeBytes": result.size_bytes,
    }


def run_benchmark(scenarios_dir, output_dir, config=None, logger=None) -> dict:
    log = logger or _log
    config = config or GeneratorConfig(repackage=False)
    scenarios = list_scenarios(scenarios_dir)
    if not scenarios:
        raise FileNotFoundError(f"No scenarios found in {scenarios_dir}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    report = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "python": sys.version.split()[0],
        "platform": f"{platform.system()} {platform.release()} ({platform.machine()})",
        "results": [],
    }

    log.info("Benchmarking template generator with scenarios: %s", ", ".join(scenarios))
    for name in scenarios:
        try:
            data = load_scenario(scenarios_dir, name)
        except (OSError, ValueError) as exc:
            entry = {"scenario": name, "error": f"Could not load scenario: {exc}"}
        else:
            entry = benchmark_scenario(name, data, output_dir / f"{name}.pbit", config, log)
        report["results"].append(entry)
        if "error" in entry:
            log.error("Generation failed for %s: %s", name, entry["error"])
        else:
            log.info(
                "%s: time %s ms, mem delta %s MB, CPU (user+sys) %.2f ms, size %s bytes",
                name, entry["durationMs"], entry["memoryDeltaMB"],
                entry["cpuUserMs"] + entry["cpuSystemMs"], entry["outputSizeBytes"],
            )

    report_path = output_dir / f"benchmark_{int(time.time() * 1000)}.json"
    report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    report["reportPath"] = str(report_path)
    log.info("Benchmark report saved to %s", report_path)
    return report
