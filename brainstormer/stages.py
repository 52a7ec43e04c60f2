from typing import Tuple

STAGES: Tuple[str, ...] = (
    "concept",
    "problem_solution_fit",
    "gtm",
    "pitch",
    "investor_package",
)

DEFAULT_STAGE = STAGES[0]


def is_valid_stage(stage: str) -> bool:
    return stage in STAGES


def next_stage(stage: str) -> str:
    """Return the stage after `stage`; the last stage stays where it is."""
    if not is_valid_stage(stage):
        raise ValueError(f"Unknown stage: {stage}")
    idx = STAGES.index(stage)
    return STAGES[min(idx + 1, len(STAGES) - 1)]
