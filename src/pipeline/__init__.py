"""Pipeline orchestration and feed validation.

Import from the submodules directly: src.pipeline.orchestrator,
src.pipeline.validation.
"""
