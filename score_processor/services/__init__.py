"""Processing services.

Queue consumption, beatmap/difficulty resolution, eligibility and the
statistics pipeline. Storage access goes through `score_processor.stores`.
"""
