# Path: exporter/engine/job_client.py
"""
Export Job Client

Starts, cancels and pre-checks server-side export jobs.

Architecture:
- Thin layer over ExportHttpClient
- start_export is not retried here (the orchestrator owns policy)
- cancel_export is best-effort and never raises
- createdBy context resolved once per client
"""

import asyncio
from typing import Optional
import aiohttp

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.engine.http_client import ExportHttpClient
from exporter.engine.errors import JobCreationError
from exporter.engine.result import DependencyReport
from exporter.constants import (
    DEFAULT_EXPORT_PROFILE,
    DEFAULT_CREATED_BY,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from exporter.engine.constants import (
    ENDPOINT_START_EXPORT,
    ENDPOINT_CANCEL_EXPORT,
    ENDPOINT_DEPENDENCIES,
    ENDPOINT_CURRENT_USER,
    SELECTOR_SYSTEM_NAME,
    HEADER_USER_EMAIL,
    HEADER_CREATED_BY,
)

logger = get_logger(__name__, 'engine')

JOB_ID_KEYS = ('exportJobId', 'jobId', 'id')
USER_IDENTITY_KEYS = ('email', 'username', 'userName', 'id')


def build_selector_item(entity_selector: str) -> dict:
    """Request item selecting one work type by system name."""
    return {
        'systemName': SELECTOR_SYSTEM_NAME,
        'selector': {'systemName': entity_selector},
    }


class ExportJobClient:
    """
    Client for the export job endpoints.

    Features:
    - Job creation with createdBy context
    - Best-effort cancellation
    - Dependency pre-check

    Example:
        client = ExportJobClient(http)
        job_id = await client.start_export('matter-litigation', 'VeryBasic')
        ...
        await client.cancel_export(job_id)
    """

    def __init__(self, http: ExportHttpClient, config: Optional[ConfigLoader] = None):
        """
        Initialize job client.

        Args:
            http: Shared HTTP client
            config: Optional ConfigLoader instance
        """
        self.http = http
        self.config = config if config else ConfigLoader()
        self._created_by: Optional[str] = None

    async def start_export(self, entity_selector: str, export_profile: Optional[str] = None) -> str:
        """
        Create an export job.

        Args:
            entity_selector: System name of the work type to export
            export_profile: Export configuration name (from config if None)

        Returns:
            Server job id

        Raises:
            JobCreationError: Transport failure, non-2xx reply or no job id
        """
        profile = export_profile or self.config.get('export_profile', DEFAULT_EXPORT_PROFILE)
        logger.info(f"{LOG_INPUT} Starting export: {entity_selector} (profile {profile})")

        created_by = await self.resolve_created_by()
        body = {
            'exportConfigName': profile,
            'items': [build_selector_item(entity_selector)],
            'createdBy': created_by,
        }
        headers = {
            HEADER_USER_EMAIL: created_by,
            HEADER_CREATED_BY: created_by,
        }

        try:
            reply = await self.http.post_json(ENDPOINT_START_EXPORT, body, headers=headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"{LOG_OUTPUT} Export request failed: {e}")
            raise JobCreationError(f"Export request failed: {e}") from e

        if not reply.ok:
            message = f"Export request rejected with HTTP {reply.status}"
            if 'createdBy' in reply.text:
                message += " (server could not resolve createdBy for this user)"
            logger.error(f"{LOG_OUTPUT} {message}")
            raise JobCreationError(message, status_code=reply.status)

        job_id = self._extract_job_id(reply.data)
        if not job_id:
            logger.error(f"{LOG_OUTPUT} Export reply carried no job id")
            raise JobCreationError("Export reply carried no job id", status_code=reply.status)

        logger.info(f"{LOG_OUTPUT} Export job created: {job_id}")
        return job_id

    async def cancel_export(self, job_id: str) -> None:
        """
        Ask the server to cancel a job. Failures are logged, never raised.

        Args:
            job_id: Server job id
        """
        logger.info(f"{LOG_PROCESS} Cancelling export job {job_id}")
        try:
            reply = await self.http.delete(ENDPOINT_CANCEL_EXPORT.format(job_id=job_id))
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"{LOG_OUTPUT} Cancel request for {job_id} failed: {e}")
            return

        if reply.ok:
            logger.info(f"{LOG_OUTPUT} Export job {job_id} cancelled")
        else:
            logger.warning(f"{LOG_OUTPUT} Cancel request for {job_id} returned HTTP {reply.status}")

    async def analyze_dependencies(self, entity_selector: str) -> DependencyReport:
        """
        Ask the server which dependencies the export would pull in.

        Args:
            entity_selector: System name of the work type

        Returns:
            DependencyReport with mandatory and recommended lists

        Raises:
            aiohttp.ClientError: Transport failure or non-2xx reply
            asyncio.TimeoutError: Request timed out
        """
        logger.info(f"{LOG_INPUT} Analyzing dependencies: {entity_selector}")

        reply = await self.http.post_json(
            ENDPOINT_DEPENDENCIES,
            build_selector_item(entity_selector),
            raise_for_status=True
        )

        dependencies = {}
        if isinstance(reply.data, dict):
            dependencies = reply.data.get('dependencies') or {}

        report = DependencyReport(
            entity_selector=entity_selector,
            mandatory=list(dependencies.get('mandatory') or []),
            recommended=list(dependencies.get('recommended') or []),
        )

        logger.info(
            f"{LOG_OUTPUT} Found {len(report.mandatory)} mandatory and "
            f"{len(report.recommended)} recommended dependencies"
        )
        return report

    async def resolve_created_by(self) -> str:
        """
        Identity sent as createdBy with new jobs.

        Uses the current user's email, username or id, falling back to the
        configured user name and finally to 'system'.

        Returns:
            Identity string
        """
        if self._created_by:
            return self._created_by

        identity = None
        try:
            reply = await self.http.get_json(ENDPOINT_CURRENT_USER)
            if reply.ok and isinstance(reply.data, dict):
                for key in USER_IDENTITY_KEYS:
                    if reply.data.get(key):
                        identity = str(reply.data[key])
                        break
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"{LOG_PROCESS} Current user lookup failed: {e}")

        if not identity:
            identity = self.config.get('user_name') or DEFAULT_CREATED_BY
            logger.info(f"{LOG_PROCESS} Using fallback user context: {identity}")

        self._created_by = identity
        return identity

    @staticmethod
    def _extract_job_id(data) -> Optional[str]:
        if isinstance(data, str) and data.strip():
            return data.strip().strip('"')
        if not isinstance(data, dict):
            return None
        for key in JOB_ID_KEYS:
            if data.get(key):
                return str(data[key])
        return None


__all__ = ['ExportJobClient', 'build_selector_item']
