"""
Human-readable message lookup.

Messages live in ``sdkprovision/resources/messages.yaml`` and are keyed by the
same identifiers the installers use for their error conditions. Lookup never
fails: an unknown key falls back to the key itself.
"""

import functools
import logging
from importlib import resources
from typing import Dict

import yaml

logger = logging.getLogger(__name__)

MESSAGES_FILE = "messages.yaml"


@functools.lru_cache(maxsize=1)
def load_messages() -> Dict[str, str]:
    """
    Load the message table shipped with the package.

    Returns:
        Mapping of message key to message template
    """
    try:
        text = (
            resources.files("sdkprovision.resources")
            .joinpath(MESSAGES_FILE)
            .read_text(encoding="utf-8")
        )
        data = yaml.safe_load(text) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load message resources: {e}")
        return {}

    return {str(key): str(value) for key, value in data.items()}


def get_string(key: str, **kwargs) -> str:
    """
    Get the message for a key, formatted with keyword arguments.

    Args:
        key: Message key (e.g. 'NeedInstallDestination')
        **kwargs: Values substituted into the template

    Returns:
        Formatted message, or the key itself when no message is defined

    Example:
        >>> get_string("UnsupportedPlatform")
        'No installer implementation is registered for this platform'
    """
    template = load_messages().get(key)
    if template is None:
        return key

    if kwargs:
        try:
            return template.format(**kwargs)
        except (KeyError, IndexError):
            logger.debug(f"Missing format arguments for message {key}")
    return template
