"""List and delete stored photo objects."""

from invoke import Context, task

from ..logging_config import configure_structured_logging, get_logger
from ..services.storage import get_storage_service
from .batch_upload import load_environment

logger = get_logger(__name__)


def cleanup_storage_objects(prefix: str = "", dry_run: bool = True) -> tuple[list[str], int]:
    """
    Delete every object of the photos bucket under ``prefix``.

    Returns:
        tuple[list[str], int]: Paths found under the prefix, and how many of them were deleted (0 in a dry run)
    """
    storage_service = get_storage_service()
    paths = storage_service.list_files(prefix)

    if dry_run:
        logger.info("storage_cleanup_dry_run", prefix=prefix, files=len(paths))
        return paths, 0

    deleted = storage_service.delete_files(paths)
    logger.info("storage_cleanup_finished", prefix=prefix, files=len(paths), deleted=deleted)
    return paths, deleted


@task
def cleanup_storage(c: Context, user_id: str = "", env_file: str = ".env", dry_run: bool = True):
    """
    Delete stored photos, optionally only one user's.

    Args:
        c (Context): Invoke context.
        user_id (str): Only delete objects of this user. Default is every object.
        env_file (str): Path to the environment file. Default is '.env'.
        dry_run (bool): Only list what would be deleted. Default is True; pass --no-dry-run to delete.
    """
    load_environment(env_file)
    configure_structured_logging()

    prefix = f"{user_id}/" if user_id else ""
    paths, deleted = cleanup_storage_objects(prefix, dry_run)

    if dry_run:
        print("\n--- Dry Run Mode: Objects to be deleted ---")
        for path in paths:
            print(f"- {path}")
        print("--- End of Dry Run ---")
    else:
        print(f"\nDeleted {deleted} of {len(paths)} object(s).")
