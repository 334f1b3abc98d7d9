"""
Crisis Resource Directory

Jurisdiction-aware crisis resource directory.
Resources can be overridden from a JSON file without a release.

LEGAL_REVIEW_REQUIRED: Crisis resource information
must be verified for accuracy in each jurisdiction.
"""

from dataclasses import dataclass, field
from typing import Optional
import json
import os

from haven.config.logging_config import get_logger
from haven.domain.enums.safety_enums import CrisisResourceType
from haven.domain.models.safety_models import CrisisResource

logger = get_logger(__name__)


@dataclass
class JurisdictionResources:
    """
    Crisis resources for a single jurisdiction.

    Attributes:
        country_code: ISO country code
        country_name: Human-readable country name
        resources: Ordered resources, most urgent first
    """

    country_code: str
    country_name: str
    resources: list[CrisisResource] = field(default_factory=list)

    def of_type(self, resource_type: CrisisResourceType) -> list[CrisisResource]:
        return [r for r in self.resources if r.type == resource_type]


class CrisisResourceDirectory:
    """
    Queryable crisis resource list.

    Usage:
        directory = CrisisResourceDirectory(country_code="US")
        everything = directory.list_resources()
        referrals = directory.list_resources(CrisisResourceType.PROFESSIONAL)
    """

    # Fallback when the jurisdiction is unknown
    DEFAULT_RESOURCES: JurisdictionResources = JurisdictionResources(
        country_code="INTL",
        country_name="International",
        resources=[
            CrisisResource(
                name="International Association for Suicide Prevention",
                type=CrisisResourceType.HOTLINE,
                contact="https://www.iasp.info/resources/Crisis_Centres/",
                description="Directory of crisis centres worldwide",
            ),
            CrisisResource(
                name="Befrienders Worldwide",
                type=CrisisResourceType.HOTLINE,
                contact="https://www.befrienders.org/",
                description="Emotional support centres globally",
            ),
            CrisisResource(
                name="EMDR Professional Directory",
                type=CrisisResourceType.PROFESSIONAL,
                contact="https://www.emdria.org/find-a-therapist/",
                description="Find a certified EMDR therapist",
                availability="Business hours",
            ),
        ],
    )

    # LEGAL_REVIEW_REQUIRED: Verify all numbers before production
    BUILT_IN_RESOURCES: dict[str, JurisdictionResources] = {
        "US": JurisdictionResources(
            country_code="US",
            country_name="United States",
            resources=[
                CrisisResource(
                    name="National Suicide Prevention Lifeline",
                    type=CrisisResourceType.HOTLINE,
                    contact="988",
                    description="24/7 crisis support",
                ),
                CrisisResource(
                    name="Crisis Text Line",
                    type=CrisisResourceType.TEXT,
                    contact="Text HOME to 741741",
                    description="24/7 text-based crisis support",
                ),
                CrisisResource(
                    name="Emergency Services",
                    type=CrisisResourceType.EMERGENCY,
                    contact="911",
                    description="Immediate emergency response",
                ),
                CrisisResource(
                    name="EMDR Professional Directory",
                    type=CrisisResourceType.PROFESSIONAL,
                    contact="https://www.emdria.org/find-a-therapist/",
                    description="Find a certified EMDR therapist",
                    availability="Business hours",
                ),
            ],
        ),
        "GB": JurisdictionResources(
            country_code="GB",
            country_name="United Kingdom",
            resources=[
                CrisisResource(
                    name="Samaritans",
                    type=CrisisResourceType.HOTLINE,
                    contact="116 123",
                    description="Emotional support for anyone in distress",
                ),
                CrisisResource(
                    name="SHOUT",
                    type=CrisisResourceType.TEXT,
                    contact="Text SHOUT to 85258",
                    description="Text-based mental health support",
                ),
                CrisisResource(
                    name="Emergency Services",
                    type=CrisisResourceType.EMERGENCY,
                    contact="999",
                    description="Immediate emergency response",
                ),
                CrisisResource(
                    name="EMDR Association UK",
                    type=CrisisResourceType.PROFESSIONAL,
                    contact="https://emdrassociation.org.uk/find-a-therapist/",
                    description="Find an accredited EMDR therapist",
                    availability="Business hours",
                ),
            ],
        ),
    }

    def __init__(
        self,
        country_code: str = "US",
        config_path: Optional[str] = None,
    ) -> None:
        """
        Initialize directory.

        Args:
            country_code: Default jurisdiction for queries
            config_path: Optional path to JSON override file
        """
        self.country_code = country_code
        self._resources = dict(self.BUILT_IN_RESOURCES)

        if config_path and os.path.exists(config_path):
            self._load_config(config_path)

    def _load_config(self, config_path: str) -> None:
        """Load resources from JSON config file."""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            for country_code, country_data in data.items():
                self._resources[country_code] = JurisdictionResources(
                    country_code=country_code,
                    country_name=country_data.get("country_name", country_code),
                    resources=[
                        CrisisResource.from_dict(r)
                        for r in country_data.get("resources", [])
                    ],
                )

            logger.info(
                "Loaded crisis resources config",
                path=config_path,
                jurisdiction_count=len(data),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            # Built-in resources stay in effect
            logger.error("Failed to load crisis resources config", path=config_path, error=str(e))

    def get_jurisdiction(self, country_code: Optional[str] = None) -> JurisdictionResources:
        """Resolve resources for a jurisdiction, falling back to international."""
        code = country_code or self.country_code
        if code in self._resources:
            return self._resources[code]

        logger.warning(
            "No crisis resources for jurisdiction, using default",
            country_code=code,
        )
        return self.DEFAULT_RESOURCES

    def list_resources(
        self,
        resource_type: Optional[CrisisResourceType] = None,
        country_code: Optional[str] = None,
    ) -> list[CrisisResource]:
        """
        List crisis resources.

        Args:
            resource_type: Optional filter on contact channel
            country_code: Jurisdiction (defaults to the directory's)

        Returns:
            Resources, most urgent first
        """
        jurisdiction = self.get_jurisdiction(country_code)
        if resource_type is None:
            return list(jurisdiction.resources)
        return jurisdiction.of_type(resource_type)

    def list_supported_countries(self) -> list[str]:
        return list(self._resources.keys())
