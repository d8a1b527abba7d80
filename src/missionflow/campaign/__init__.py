"""Campaign system.

Loads campaign structure from the database and builds progress trackers
for it.
"""

from missionflow.campaign.service import CampaignService

__all__ = [
    "CampaignService",
]
