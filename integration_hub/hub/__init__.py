"""
Integration Hub Package

Receipt of channel deliveries and the routing pipeline for stored messages.
"""

from .integration_hub import IntegrationHub, ProcessResult, generate_secret
from .lead_pipeline import LeadPipeline, PipelineResult

__all__ = ['IntegrationHub', 'ProcessResult', 'generate_secret', 'LeadPipeline', 'PipelineResult']
