"""
Run the structural analysis pipeline on a sample claim landscape and save the
full `StructuralAnalysis` to a JSON file.

An artifact path may be passed as the first argument; it must hold a mapper
payload ({"semantic": {...}, "meta": {"modelCount": n}}). Without one, the
built-in example below is used.

Usage:
    python scripts/run_structural_example.py [artifact.json]
"""
import os
import sys
import json
import logging

from landscape.core.config import AppConfig
from landscape.orchestration.structural_analysis_orchestrator import StructuralAnalysisOrchestrator

OUT_DIR = ""
OUT_PATH = os.path.join(OUT_DIR, "structural_analysis_run.json")
ERR_PATH = os.path.join(OUT_DIR, "structural_analysis_run_error.log")

# Four models weighing a database choice for a new service
EXAMPLE_ARTIFACT = {
    "semantic": {
        "claims": [
            {"id": "pg", "label": "Use Postgres", "text": "Postgres fits a relational workload", "supporters": [0, 1, 2]},
            {"id": "ddb", "label": "Use DynamoDB", "text": "DynamoDB scales without tuning", "supporters": [0, 1, 3]},
            {"id": "ops", "label": "Ops burden", "text": "Self-hosting Postgres needs a DBA", "supporters": [3]},
            {"id": "schema", "label": "Model the schema", "text": "Access patterns must be known first", "supporters": [1, 2]},
            {"id": "if_spiky", "label": "Spiky traffic", "type": "conditional",
             "text": "If traffic is spiky, on-demand capacity matters", "supporters": [3]},
        ],
        "edges": [
            {"from": "pg", "to": "ddb", "type": "conflicts"},
            {"from": "ops", "to": "pg", "type": "conflicts"},
            {"from": "schema", "to": "ddb", "type": "prerequisite"},
            {"from": "if_spiky", "to": "ddb", "type": "supports"},
        ],
        "conditionals": [],
        "ghosts": ["data residency"],
    },
    "meta": {"modelCount": 4},
}


def load_artifact(argv):
    if len(argv) > 1:
        with open(argv[1]) as f:
            return json.load(f)
    return EXAMPLE_ARTIFACT


def main():
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.analysis.log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        analysis = StructuralAnalysisOrchestrator(config=config).run(load_artifact(sys.argv))

        with open(OUT_PATH, "w") as f:
            json.dump(analysis.to_dict(), f, indent=2)

        shape = analysis.shape
        print(f"Primary shape: {shape.primary.value} (confidence {shape.confidence:.2f})")
        print(f"Shape data: {shape.data.pattern}")
        if shape.classification_override:
            print(f"Override: {shape.classification_override.reason}")
        print(f"Transfer question: {shape.transfer_question}")
        print(f"Saved run output to {OUT_PATH}")
    except Exception as e:
        print("Run failed:", e)
        with open(ERR_PATH, "w") as ef:
            ef.write(str(e))
        print(f"Wrote error to {ERR_PATH}")
        sys.exit(1)


if __name__ == "__main__":
    main()
