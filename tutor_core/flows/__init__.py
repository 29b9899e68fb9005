from tutor_core.flows.graph import GenerationSpec
from tutor_core.flows.runner import GenerationOutcome, run_generation

__all__ = ["GenerationOutcome", "GenerationSpec", "run_generation"]
