"""Thin wrappers around the CRM REST endpoints.

Every wrapper method returns the parsed response body and lets the client's
typed exceptions propagate, except :class:`PredictionEngine`, which logs
failures and returns ``None`` (or ``[]``).
"""

from vopex.services.agents import AgentService
from vopex.services.ai import AIService
from vopex.services.analytics import AnalyticsService
from vopex.services.campaigns import CampaignService
from vopex.services.leads import LeadService
from vopex.services.notifications import NotificationService
from vopex.services.opportunities import OpportunityService
from vopex.services.predictions import PredictionEngine
from vopex.services.social import SocialMediaService
from vopex.services.users import UserService

__all__ = [
    "AIService",
    "AgentService",
    "AnalyticsService",
    "CampaignService",
    "LeadService",
    "NotificationService",
    "OpportunityService",
    "PredictionEngine",
    "SocialMediaService",
    "UserService",
]
