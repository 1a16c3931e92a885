"""
Selection of remote executions that are ready to be archived.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from reports_common.models import ExecutionMetadata

logger = logging.getLogger(__name__)


def is_old_enough(
    execution: ExecutionMetadata, min_reports_age_millis: int, now: datetime
) -> bool:
    """Blank or unparsable dates are never old enough."""
    execution_date = execution.parsed_date()
    if execution_date is None:
        return False
    return now - execution_date > timedelta(milliseconds=min_reports_age_millis)


def select_executions_to_archive(
    remote_executions: Mapping[int, ExecutionMetadata],
    local_executions: Iterable[ExecutionMetadata],
    min_reports_age_millis: int,
    max_to_archive: int,
    now: datetime | None = None,
) -> list[ExecutionMetadata]:
    """
    Select the remote executions that are finished, old enough and not yet local.

    This function has no side effects.

    Args:
        remote_executions: Map of ids to all executions on the remote server
        local_executions: Executions already present in local persistency
        min_reports_age_millis: Minimum age of an execution, in milliseconds
        max_to_archive: Maximum number of executions to select
        now: Reference time for the age check (default: current time)

    Returns:
        Eligible executions ordered by id, at most max_to_archive of them
    """
    if now is None:
        now = datetime.now()
    if max_to_archive <= 0:
        return []

    local_ids = {execution.id for execution in local_executions}

    executions_to_archive = [
        execution
        for _, execution in sorted(remote_executions.items())
        if not execution.active
        and execution.id not in local_ids
        and is_old_enough(execution, min_reports_age_millis, now)
    ][:max_to_archive]

    logger.debug(
        f"There are {len(executions_to_archive)} executions that need to be archived "
        f"from the remote server. Max executions to archive in a single cycle is "
        f"{max_to_archive}"
    )
    return executions_to_archive
