#!/usr/bin/env python3
"""
DiscordClasses mapping helpers

The DiscordClasses repository publishes a JSON file shaped like
{module_id: {semantic_name: hashed_class}}, e.g.
{"12345": {"container": "container_ae16b8"}}. Themes reference the hashed
names, which change whenever Discord ships a new build.
"""

import json
import logging
import re
from typing import Dict, Set, Tuple

import requests

logger = logging.getLogger(__name__)

DISCORDCLASSES_URL = "https://raw.githubusercontent.com/IBeSarah/DiscordClasses/main/discordclasses.json"
DEFAULT_TIMEOUT = 30

# .container_ae16b8
DOT_CLASS_RE = re.compile(r"\.([a-zA-Z][a-zA-Z0-9]*_[a-f0-9]{6})(?![\w-])")
# [class*="container_ae16b8"]
ATTR_CLASS_RE = re.compile(r'\[class\*="([a-zA-Z][a-zA-Z0-9]*_[a-f0-9]{6})"\]')

ClassMap = Dict[str, Dict[str, str]]


def fetch_class_map(url: str = DISCORDCLASSES_URL, timeout: float = DEFAULT_TIMEOUT) -> ClassMap:
    """Download the mapping: one blocking GET, no retry"""
    logger.info(f"🌐 Fetching latest Discord classes from {url}")
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError("DiscordClasses JSON must be an object of modules")
    return data


def load_class_map(path) -> ClassMap:
    logger.info(f"Loading Discord classes from: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: DiscordClasses JSON must be an object of modules")
    return data


def reverse_mapping(class_map: ClassMap) -> Dict[str, str]:
    """hashed_class -> semantic_name"""
    reverse = {}
    for class_names in class_map.values():
        for semantic, hashed in class_names.items():
            reverse[hashed] = semantic
    return reverse


def semantic_name(hashed_class: str) -> str:
    return hashed_class.rsplit("_", 1)[0]


def extract_theme_classes(content: str) -> Set[str]:
    """All hashed Discord classes a theme refers to"""
    classes = set(DOT_CLASS_RE.findall(content))
    classes.update(ATTR_CLASS_RE.findall(content))
    return classes


def replace_class(content: str, old_class: str, new_class: str) -> Tuple[str, int]:
    """
    Swap one hashed class for another in both selector forms.

    `.old` is only replaced when it is not the prefix of a longer class name.
    """
    dot_pattern = re.compile(r"\." + re.escape(old_class) + r"(?![\w-])")
    content, dot_count = dot_pattern.subn("." + new_class, content)

    old_attr = f'[class*="{old_class}"]'
    attr_count = content.count(old_attr)
    if attr_count:
        content = content.replace(old_attr, f'[class*="{new_class}"]')

    return content, dot_count + attr_count
