"""Chat identifier helpers.

Telegram reports supergroups with ids of the form ``-100<N>``. A basic group that was
migrated to a supergroup keeps its history under the old id ``-<N>``, so both ids are
needed to see the whole history of one chat.
"""

SUPERGROUP_OFFSET = 1_000_000_000_000


def is_supergroup_id(group_id: int) -> bool:
    """Return True when the id uses the ``-100<N>`` supergroup form."""
    return group_id < -SUPERGROUP_OFFSET


def legacy_group_id(group_id: int) -> int | None:
    """Return the pre-migration basic group id for a supergroup id, if any."""
    if not is_supergroup_id(group_id):
        return None
    return group_id + SUPERGROUP_OFFSET


def group_ids_to_probe(group_id: int) -> list[int]:
    """Group ids whose indexes may hold messages of this chat, current id first."""
    legacy = legacy_group_id(group_id)
    return [group_id] if legacy is None else [group_id, legacy]


def deep_link_chat_suffix(group_id: int) -> str:
    """Numeric chat part of a ``/c/<suffix>/<message>`` link."""
    raw = str(group_id)
    if raw.startswith("-100"):
        return raw[4:]
    if raw.startswith("-"):
        return raw[1:]
    return raw


def message_link(host: str, group_id: int, message_id: int) -> str:
    """Deep link that opens the client at a specific message."""
    return f"https://{host}/c/{deep_link_chat_suffix(group_id)}/{message_id}"
