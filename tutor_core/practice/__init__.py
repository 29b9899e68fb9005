from tutor_core.practice.scoring import aggregate_results, approximate_sat_scale, score_attempt, score_question

__all__ = ["aggregate_results", "approximate_sat_scale", "score_attempt", "score_question"]
