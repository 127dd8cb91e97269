"""Application settings loaded from the environment."""

from pydantic_settings import BaseSettings

from brainflow.models.schemas import NoteStatus


class SyncSettings(BaseSettings):
    """Note-graph synchronization settings.

    serialize_per_note: hold an in-process lock per (user, slug) while a note
        is synchronized, so two rapid writes of the same note do not
        interleave their edge delete/insert phases.
    default_written_status: status given to a note created or promoted from
        a ghost by a content write.
    """

    serialize_per_note: bool = True
    default_written_status: NoteStatus = NoteStatus.UNDERSTOOD

    model_config = {"env_prefix": "BRAINFLOW_SYNC_", "extra": "ignore"}


class AppSettings(BaseSettings):
    """HTTP surface settings."""

    frontend_url: str = "http://localhost:3000"
    debug: bool = False
    vault_search_limit: int = 20
    recommendation_limit: int = 5
    chat_max_steps: int = 25

    model_config = {"env_prefix": "", "extra": "ignore"}
