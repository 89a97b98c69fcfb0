from __future__ import annotations
import os

CARRY_VAR = os.environ.get("TYPEDCI_CARRY_VAR", "JOB_ENV")
ENV_OUTPUT_PREFIXES = tuple(
    os.environ.get(
        "TYPEDCI_ENV_OUTPUT_PREFIXES",
        "build_app run_tests deploy_app build test deploy",
    ).split()
)
WORKFLOW_FILE = os.environ.get("TYPEDCI_WORKFLOW_FILE", "typedci_workflow.py")
