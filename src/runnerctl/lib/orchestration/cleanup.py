"""Removal of the ``local-test-*`` images left behind by earlier runs."""

from collections.abc import Callable

from .._util.ansi import error, header, info, success, warning
from .._util.logging_utils import _log_debug
from ..containers.runtime import list_local_images, remove_image
from ..core.images import LOCAL_IMAGE_PREFIX


def clean_local_images(
    confirm_fn: Callable[[str], bool],
    *,
    assume_yes: bool = False,
) -> int:
    """List local test images, ask once, then remove them one by one.

    Returns the process exit code: 0 when nothing was found, the user
    cancelled, or every removal succeeded; 1 when any removal failed.
    """
    header("Cleaning up local test images")
    images = list_local_images(LOCAL_IMAGE_PREFIX)
    if not images:
        info(f"No {LOCAL_IMAGE_PREFIX}* images found")
        return 0

    print(f"Found {len(images)} local test image(s):")
    for index, image in enumerate(images, start=1):
        print(f"  {index}. {image}")
    print()

    if not assume_yes and not confirm_fn(f"Remove all {len(images)} image(s)?"):
        warning("Cleanup cancelled")
        return 0

    removed = 0
    failed = 0
    for image in images:
        if remove_image(image):
            success(f"Removed: {image}")
            removed += 1
        else:
            error(f"Failed to remove: {image}")
            failed += 1

    _log_debug(f"clean_local_images: removed={removed} failed={failed}")
    print()
    info(f"Removed: {removed}")
    if failed:
        error(f"Failed: {failed}")
        return 1
    return 0
