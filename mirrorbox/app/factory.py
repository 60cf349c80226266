"""Build sync jobs from configuration."""

import logging
from typing import Callable, Optional

from ..config import Config, SyncJobConfig
from ..exceptions import ConfigError
from ..sync.engine import Syncer
from ..sync.job import Job
from ..sync.stores import (
    DestinationStore,
    LocalStore,
    NullRemoteStore,
    RemoteConfig,
    RemoteDestination,
    RemoteStore,
    is_remote_destination,
)
from ..utils import DEFAULT_JOB_TIMEOUT

logger = logging.getLogger(__name__)

RemoteStoreFactory = Callable[[RemoteConfig], RemoteStore]


class JobFactory:
    """Creates Job instances from job definitions.

    Remote destinations (``smb://`` URLs) get a store from
    ``remote_store_factory``; the default is the no-op NullRemoteStore.
    """

    def __init__(
        self,
        remote_store_factory: Optional[RemoteStoreFactory] = None,
        job_timeout: float = DEFAULT_JOB_TIMEOUT,
        syncer: Optional[Syncer] = None,
    ):
        """Initialize job factory.

        Args:
            remote_store_factory: Builds a RemoteStore for a share address
            job_timeout: Run budget given to every created job
            syncer: Syncer shared by created jobs (one per job if None)
        """
        self.remote_store_factory = remote_store_factory or NullRemoteStore
        self.job_timeout = job_timeout
        self.syncer = syncer

    def create_from_config(self, config: Config) -> list[Job]:
        """Create jobs for every enabled entry of a configuration.

        Raises:
            ConfigError: If an entry cannot be turned into a job
        """
        jobs: list[Job] = []
        for job_config in config.sync_jobs:
            if not job_config.enabled:
                logger.debug("Skipping disabled job: %s", job_config.name)
                continue
            try:
                jobs.append(self.create_job(job_config))
            except ConfigError as e:
                raise ConfigError(f"create job {job_config.name}: {e}") from e
        return jobs

    def create_job(self, job_config: SyncJobConfig) -> Job:
        return Job(
            name=job_config.name,
            source_root=job_config.source_path,
            destination=self.create_destination(job_config.destination_path),
            delete_extra_files=job_config.delete_extra_files,
            schedule=job_config.schedule,
            timeout=self.job_timeout,
            syncer=self.syncer,
        )

    def create_destination(self, destination_path: str) -> DestinationStore:
        """Pick the destination backend for a configured path."""
        if is_remote_destination(destination_path):
            remote_config = RemoteConfig.from_url(destination_path)
            store = self.remote_store_factory(remote_config)
            return RemoteDestination(store, remote_config.path)
        return LocalStore(destination_path)
