"""
Editor notifications — map host editor hooks onto ActivityEvents.

Only an explicit scene save counts as a forced write; every other hook is
ordinary activity and goes through the cooldown.
"""

from enum import Enum

from wakabeat.types import ActivityEvent

ASSETS_PREFIX = "Assets/"


class EditorActivity(str, Enum):
    STARTUP = "startup"
    PLAY_MODE_CHANGED = "play_mode_changed"
    PROPERTY_CONTEXT_MENU = "property_context_menu"
    HIERARCHY_CHANGED = "hierarchy_changed"
    SCENE_SAVED = "scene_saved"
    SCENE_OPENED = "scene_opened"
    SCENE_CLOSING = "scene_closing"
    SCENE_CREATED = "scene_created"


FORCED_WRITE_ACTIVITIES = frozenset({EditorActivity.SCENE_SAVED})


def resolve_scene_path(data_path: str, scene_path: str) -> str:
    """Absolute path of the active scene, or "" for an unsaved scene.

    Scene paths are project-relative (`Assets/Scenes/Main.unity`) while the
    data path already points at the Assets directory.
    """
    if not scene_path:
        return ""
    relative = scene_path[len(ASSETS_PREFIX):] if scene_path.startswith(ASSETS_PREFIX) else scene_path
    if not data_path:
        return scene_path
    return data_path.rstrip("/") + "/" + relative


def activity_event(kind: EditorActivity, scene_path: str = "", data_path: str = "") -> ActivityEvent:
    return ActivityEvent(
        source_path=resolve_scene_path(data_path, scene_path),
        is_forced_write=kind in FORCED_WRITE_ACTIVITIES,
    )
