"""Long-running services."""

from headline_anchor.services.pipeline_service import PipelineService

__all__ = ["PipelineService"]
