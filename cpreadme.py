from __future__ import annotations

import argparse
import codecs
import csv
import glob
import html
import json
import re
import sys
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from bs4 import BeautifulSoup
from colorama import init, Fore, Style


init(autoreset=True)


TOOL_NAME = "cpreadme"

MAX_USERNAME_LENGTH = 50
MAX_USERNAME_LINE = 100
PRIMARY_USER_MARKER = "(you)"
MIN_PARAGRAPH_LENGTH = 10

SCORING_SERVICE = "CCS Client"
SCORING_SERVICE_TOKEN = "CCS"

README_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "cp1252")

DEFAULT_README_PATHS: tuple[str, ...] = (
    r"C:\Users\Public\Desktop\README.html",
    r"C:\CyberPatriot\README.html",
    r"C:\Users\Public\Documents\README.html",
    str(Path.home() / "Desktop" / "README.html"),
    r"C:\Users\*\Desktop\README.html",
)

PROHIBITED_SOFTWARE_KEYWORDS: tuple[str, ...] = (
    "hacking tools",
    "hacking tool",
    "non-work related media",
    "unauthorized software",
    "prohibited software",
    "games",
    "peer-to-peer",
    "p2p",
    "torrent",
    "crack",
    "keygen",
)

SOFTWARE_STOP_WORDS = frozenset({"the", "a", "an", "for", "use", "company"})

LIST_CONJUNCTIONS = frozenset({"and", "or"})

COMMON_WORDS = frozenset({
    "this", "that", "user", "account", "the", "new", "for", "and", "not",
    "all", "any", "are", "was", "were", "been", "being", "have", "has",
    "had", "having", "does", "did", "doing", "should", "would", "could",
    "must", "will", "shall", "may", "might", "can", "need", "home",
    "employee", "named", "called", "following", "with", "from", "into",
})

OPERATING_SYSTEMS: tuple[tuple[str, str], ...] = (
    ("windows 10", "Windows 10"),
    ("windows 11", "Windows 11"),
    ("windows server 2019", "Windows Server 2019"),
    ("windows server 2022", "Windows Server 2022"),
    ("windows server 2016", "Windows Server 2016"),
    ("ubuntu", "Ubuntu Linux"),
    ("debian", "Debian Linux"),
    ("linux", "Linux"),
)

STORE_RESTRICTION_PHRASES: tuple[str, ...] = (
    "should not be installed using the microsoft store",
    "not be installed using microsoft store",
)
STORE_RESTRICTION_NOTE = "Do not install via Microsoft Store."

SERVICE_WARNING_PHRASES: tuple[str, ...] = (
    "do not disable",
    "don't disable",
    "do not stop",
    "don't stop",
)

_DOTALL = re.IGNORECASE | re.DOTALL

_H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", _DOTALL)
_SECTION_RE = re.compile(r"<h2[^>]*>(.*?)</h2>(.*?)(?=<h2|$)", _DOTALL)
_ADMIN_BLOCK_RE = re.compile(r"Authorized\s+Administrators.*?(?=<h2|$)", _DOTALL)
_PRE_RE = re.compile(r"<pre[^>]*>(.*?)</pre>", _DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_PASSWORD_LINE_RE = re.compile(r"password ?:", re.IGNORECASE)
_SCENARIO_RE = re.compile(r"Competition\s+Scenario\s*</h2>\s*(.*?)(?=<h2|$)", _DOTALL)
_GUIDELINES_RE = re.compile(r"Competition\s+Guidelines.*?<ul[^>]*>(.*?)</ul>", _DOTALL)
_CRITICAL_SERVICES_RE = re.compile(r"Critical\s+Services:?\s*(.*?)(?:<h2|</ul>|$)", _DOTALL)
_NEGATION_TAIL_RE = re.compile(r"do\s+not\s+$", re.IGNORECASE)
_LEADING_ARTICLE_RE = re.compile(r"^the\s+", re.IGNORECASE)

_REQUIRED_SOFTWARE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"latest\s+(?:stable\s+)?version\s+of\s+([A-Za-z0-9]+)", _DOTALL),
    re.compile(
        r"access\s+to\s+(?:the\s+)?(?:latest\s+)?(?:stable\s+)?(?:version\s+of\s+)?"
        r"([A-Za-z0-9,\s]+?)(?:\s+for\s+company|\s+for\s+use|\.)",
        _DOTALL,
    ),
    re.compile(
        r"should\s+(?:be\s+)?(?:using|have|install)\s+(?:the\s+)?(?:latest\s+)?"
        r"(?:stable\s+)?(?:version\s+of\s+)?([A-Za-z0-9]+)",
        _DOTALL,
    ),
    re.compile(
        r"default\s+(?:web\s+)?browser.*?should\s+be\s+(?:the\s+)?(?:latest\s+)?"
        r"(?:stable\s+)?(?:version\s+of\s+)?([A-Za-z0-9]+)",
        _DOTALL,
    ),
)
_SOFTWARE_LIST_SPLIT_RE = re.compile(r"\s*,\s*and\s+|\s*,\s*|\s+and\s+", re.IGNORECASE)

_DISABLE_SERVICE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"disable\s+(?:the\s+)?([A-Za-z0-9\s]+?)\s+service", re.IGNORECASE),
    # Anchored at the start of a word run.
    re.compile(
        r"(?<![A-Za-z0-9\s])([A-Za-z0-9\s]+?)\s+service\s+should\s+(?:be\s+)?disabled",
        re.IGNORECASE,
    ),
)

_GROUP_REQUIREMENT_RE = re.compile(
    r"(?:make|create)\s+(?:a\s+)?(?:new\s+)?group\s+(?:called\s+)?[\"']?(\w+)[\"']?\s+and\s+add\s+"
    r"(?:the\s+following\s+users?\s+to\s+(?:the\s+)?[\"']?\w+[\"']?\s+group:?\s*)?([^.]+)",
    _DOTALL,
)
_MEMBER_SPLIT_RE = re.compile(r"[,\s]+")

_NEW_USER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?:make|create)\s+(?:a\s+)?(?:new\s+)?(?:account|user)\s+(?:for\s+)?"
        r"(?:this\s+employee\s+)?(?:named|called)\s+[\"']?(\w+)[\"']?",
        re.IGNORECASE,
    ),
    re.compile(r"new\s+employee.*?(?:named|called)\s+[\"']?(\w+)[\"']?", re.IGNORECASE),
)

_ITEM_USER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?:create|make)\s+(?:a\s+)?(?:new\s+)?(?:user\s+)?(?:account\s+)?(?:for\s+)?"
        r"(?:this\s+employee\s+)?(?:named|called)\s+[\"']?([a-zA-Z][a-zA-Z0-9_]+)[\"']?",
        re.IGNORECASE,
    ),
    re.compile(
        r"new\s+(?:employee|user|account)\s+(?:named|called)\s+[\"']?([a-zA-Z][a-zA-Z0-9_]+)[\"']?",
        re.IGNORECASE,
    ),
    re.compile(
        r"add\s+(?:a\s+)?(?:new\s+)?(?:user|account)\s+(?:named|called)\s+[\"']?([a-zA-Z][a-zA-Z0-9_]+)[\"']?",
        re.IGNORECASE,
    ),
)
_ITEM_CREATE_GROUP_RE = re.compile(
    r"(?:create|make)\s+(?:a\s+)?(?:new\s+)?group\s+(?:called\s+)?[\"']?(\w+)[\"']?", re.IGNORECASE
)
_ITEM_ADD_TO_GROUP_RE = re.compile(
    r"add\s+(?:user\s+)?[\"']?(\w+)[\"']?\s+to\s+(?:the\s+)?[\"']?(\w+)[\"']?\s+group", re.IGNORECASE
)
_ITEM_REMOVE_FROM_GROUP_RE = re.compile(
    r"remove\s+(?:user\s+)?[\"']?(\w+)[\"']?\s+from\s+(?:the\s+)?[\"']?(\w+)[\"']?\s+group", re.IGNORECASE
)
_ITEM_PROTECTED_SERVICE_RE = re.compile(
    r"do\s+not\s+(?:stop|disable)\s+(?:or\s+\w+\s+)?(?:the\s+)?([A-Za-z0-9\s]+?)(?:\s+service|\s+process|\.|$)",
    re.IGNORECASE,
)
_ITEM_SERVICE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?:enable|disable|start|stop)\s+(?:the\s+)?[\"']?([A-Za-z][A-Za-z0-9\s]{2,30}?)[\"']?\s+service",
        re.IGNORECASE,
    ),
    re.compile(
        r"[\"']?([A-Za-z][A-Za-z0-9\s]{2,30}?)[\"']?\s+service\s+(?:should|must|needs)\s+(?:be\s+)?"
        r"(?:enabled|disabled|started|stopped|running)",
        re.IGNORECASE,
    ),
)
# Product names are matched case-sensitively; only the verbs ignore case.
_ITEM_SOFTWARE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?i:install|uninstall|update)\s+(?i:the\s+)?(?i:latest\s+)?(?i:version\s+of\s+)?"
        r"[\"']?([A-Z][A-Za-z0-9\s]{1,25})[\"']?(?:\.|,|$|\s+for)",
        re.DOTALL,
    ),
    re.compile(
        r"[\"']?([A-Z][A-Za-z0-9]+)[\"']?\s+(?i:should|must|needs)\s+(?i:be\s+)?"
        r"(?i:installed|removed|uninstalled|updated)",
        re.DOTALL,
    ),
)


class ActionItemType(str, Enum):
    CREATE_USER = "CreateUser"
    CREATE_GROUP = "CreateGroup"
    ADD_USER_TO_GROUP = "AddUserToGroup"
    REMOVE_USER_FROM_GROUP = "RemoveUserFromGroup"
    ENABLE_SERVICE = "EnableService"
    DISABLE_SERVICE = "DisableService"
    INSTALL_SOFTWARE = "InstallSoftware"
    REMOVE_SOFTWARE = "RemoveSoftware"
    CONFIGURE_SETTING = "ConfigureSetting"
    SECURITY_POLICY = "SecurityPolicy"
    FILE_OPERATION = "FileOperation"
    OTHER = "Other"


@dataclass(frozen=True)
class AuthorizedUser:
    username: str
    password: Optional[str] = None
    is_admin: bool = False
    is_primary_user: bool = False
    notes: Optional[str] = None


@dataclass(frozen=True)
class SoftwareRequirement:
    name: str
    version: Optional[str] = None
    should_be_latest: bool = False
    is_required: bool = True
    notes: Optional[str] = None


@dataclass(frozen=True)
class GroupRequirement:
    group_name: str
    members: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ActionableItem:
    type: ActionItemType
    description: str
    raw_text: str
    details: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ItemDetector:
    name: str
    matches: Callable[[str], bool]
    parse: Callable[[str], Optional[ActionableItem]]


class SectionMap(Mapping):
    """Heading text -> section markup, looked up without regard to case.

    Iteration yields the headings as written, in document order.
    """

    def __init__(self, items: Iterable[tuple[str, str]] = ()):
        self._entries: dict[str, tuple[str, str]] = {}
        for heading, body in items:
            self._set(heading, body)

    def _set(self, heading: str, body: str) -> None:
        key = heading.casefold()
        if key in self._entries:
            heading = self._entries[key][0]
        self._entries[key] = (heading, body)

    def __getitem__(self, heading: str) -> str:
        return self._entries[heading.casefold()][1]

    def __contains__(self, heading: object) -> bool:
        return isinstance(heading, str) and heading.casefold() in self._entries

    def __iter__(self) -> Iterator[str]:
        return (heading for heading, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SectionMap({dict(self)!r})"


@dataclass
class PolicyDocument:
    title: str = ""
    operating_system: str = ""
    scenario: str = ""
    administrators: list[AuthorizedUser] = field(default_factory=list)
    users: list[AuthorizedUser] = field(default_factory=list)
    required_software: list[SoftwareRequirement] = field(default_factory=list)
    prohibited_software: list[str] = field(default_factory=list)
    critical_services: list[str] = field(default_factory=list)
    prohibited_services: list[str] = field(default_factory=list)
    group_requirements: list[GroupRequirement] = field(default_factory=list)
    users_to_create: list[str] = field(default_factory=list)
    guidelines: list[str] = field(default_factory=list)
    actionable_items: list[ActionableItem] = field(default_factory=list)
    sections: SectionMap = field(default_factory=SectionMap)

    def all_usernames(self) -> list[str]:
        return [u.username for u in self.administrators] + [u.username for u in self.users]

    def primary_user(self) -> Optional[AuthorizedUser]:
        for user in self.administrators + self.users:
            if user.is_primary_user:
                return user
        return None

    def is_critical_service(self, name: str) -> bool:
        return _contains_ci(self.critical_services, name)

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=_json_ready)


def _json_ready(pairs: list[tuple[str, object]]) -> dict:
    out: dict = {}
    for key, value in pairs:
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, SectionMap):
            value = dict(value)
        out[key] = value
    return out


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize_space(text: str) -> str:
    return " ".join(text.split())


def _strip_tags(markup: str) -> str:
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    return _normalize_space(soup.get_text(" "))


def _list_items(markup: str) -> list[str]:
    soup = BeautifulSoup(markup, "html.parser")
    items: list[str] = []
    for li in soup.find_all("li"):
        text = _normalize_space(li.get_text(" "))
        if text:
            items.append(text)
    return items


def _contains_ci(items: Iterable[str], value: str) -> bool:
    folded = value.casefold()
    return any(item.casefold() == folded for item in items)


def _append_unique(items: list[str], value: str) -> bool:
    if _contains_ci(items, value):
        return False
    items.append(value)
    return True


def is_valid_username(username: str) -> bool:
    if not username or not username.strip():
        return False
    if len(username) > MAX_USERNAME_LENGTH:
        return False
    lowered = username.lower()
    if "password" in lowered or "authorized" in lowered or ":" in username:
        return False
    return any(ch.isalpha() for ch in username)


def is_common_word(word: str) -> bool:
    return word.lower() in COMMON_WORDS


def _is_new_username(candidate: str) -> bool:
    return is_valid_username(candidate) and len(candidate) >= 3 and not is_common_word(candidate)


def _clean_service_name(name: str) -> str:
    return _LEADING_ARTICLE_RE.sub("", _normalize_space(name))


def read_readme_text(file_path: str | Path, encodings: Iterable[str] = README_ENCODINGS) -> str:
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    if not path.is_file():
        raise IsADirectoryError(str(path))

    raw = path.read_bytes()
    encodings_list = list(encodings)
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        encodings_list.insert(0, "utf-16")
    if not encodings_list:
        raise ValueError("encodings must not be empty")

    for encoding in encodings_list:
        try:
            return raw.decode(encoding)
        except UnicodeError:
            continue
    return raw.decode(encodings_list[0], errors="ignore")


def find_readme_file(candidates: Optional[Iterable[str]] = None) -> Optional[Path]:
    if candidates is None:
        candidates = DEFAULT_README_PATHS
    for candidate in candidates:
        if "*" in candidate:
            matches = sorted(glob.glob(candidate))
            for match in matches:
                if Path(match).is_file():
                    return Path(match)
        elif Path(candidate).is_file():
            return Path(candidate)
    return None


# Paragraph detectors. Each takes lower-cased paragraph text.

def _mentions_user_creation(lowered: str) -> bool:
    return (
        ("create" in lowered and ("user" in lowered or "account" in lowered))
        or ("add" in lowered and "user" in lowered)
        or "new employee" in lowered
        or "new user" in lowered
        or "new account" in lowered
    )


def _mentions_group(lowered: str) -> bool:
    return (
        (("create" in lowered or "make" in lowered) and "group" in lowered)
        or ("add" in lowered and "to" in lowered and "group" in lowered)
        or ("remove" in lowered and "from" in lowered and "group" in lowered)
        or ("member" in lowered and "group" in lowered)
    )


def _mentions_service(lowered: str) -> bool:
    verbs = ("enable", "disable", "start", "stop", "running")
    return (
        (any(v in lowered for v in verbs) and "service" in lowered)
        or "should be running" in lowered
        or "must be running" in lowered
        or "should not be running" in lowered
    )


def _mentions_software(lowered: str) -> bool:
    verbs = ("install", "uninstall", "remove", "update")
    nouns = ("software", "program", "application", "app")
    return any(v in lowered for v in verbs) and any(n in lowered for n in nouns)


def _mentions_security_policy(lowered: str) -> bool:
    return (
        ("password" in lowered and ("policy" in lowered or "require" in lowered or "complexity" in lowered))
        or "firewall" in lowered
        or ("audit" in lowered and "policy" in lowered)
        or "security policy" in lowered
        or "local security" in lowered
        or "action center" in lowered
        or "windows defender" in lowered
        or "antivirus" in lowered
    )


def _mentions_file_operation(lowered: str) -> bool:
    return (
        (("delete" in lowered or "remove" in lowered)
         and ("file" in lowered or "folder" in lowered or "directory" in lowered))
        or ("prohibited" in lowered and "file" in lowered)
        or "media file" in lowered
        or "unauthorized file" in lowered
    )


def _parse_user_creation_item(text: str) -> Optional[ActionableItem]:
    for pattern in _ITEM_USER_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        username = m.group(1).strip()
        if _is_new_username(username):
            return ActionableItem(
                type=ActionItemType.CREATE_USER,
                description=f"Create user account: {username}",
                raw_text=text,
                details={"Username": username},
            )
    return None


def _parse_group_item(text: str) -> Optional[ActionableItem]:
    lowered = text.lower()

    if "create" in lowered or "make" in lowered:
        m = _ITEM_CREATE_GROUP_RE.search(text)
        if not m:
            return None
        group = m.group(1).strip()
        return ActionableItem(
            type=ActionItemType.CREATE_GROUP,
            description=f"Create group: {group}",
            raw_text=text,
            details={"GroupName": group},
        )

    if "add" in lowered and "to" in lowered and "group" in lowered:
        item_type, pattern, verb, joiner = ActionItemType.ADD_USER_TO_GROUP, _ITEM_ADD_TO_GROUP_RE, "Add", "to"
    elif "remove" in lowered and "from" in lowered and "group" in lowered:
        item_type, pattern, verb, joiner = (
            ActionItemType.REMOVE_USER_FROM_GROUP, _ITEM_REMOVE_FROM_GROUP_RE, "Remove", "from",
        )
    else:
        return None

    m = pattern.search(text)
    if not m:
        return None
    username, group = m.group(1).strip(), m.group(2).strip()
    if not is_valid_username(username):
        return None
    return ActionableItem(
        type=item_type,
        description=f"{verb} {username} {joiner} group {group}",
        raw_text=text,
        details={"Username": username, "GroupName": group},
    )


def _protected_service_name(text: str) -> Optional[str]:
    lowered = text.lower()
    if not any(p in lowered for p in SERVICE_WARNING_PHRASES):
        return None
    m = _ITEM_PROTECTED_SERVICE_RE.search(text)
    if not m:
        return None
    name = _clean_service_name(m.group(1))
    if 2 < len(name) < 50:
        return name
    return None


def _parse_service_item(text: str) -> Optional[ActionableItem]:
    lowered = text.lower()
    # Warnings name services to keep, never services to act on.
    if any(p in lowered for p in SERVICE_WARNING_PHRASES):
        return None

    should_enable = any(k in lowered for k in ("enable", "start", "should be running", "must be running"))
    should_disable = any(k in lowered for k in ("disable", "stop", "should not be running", "must not be running"))
    if not should_enable and not should_disable:
        return None

    for pattern in _ITEM_SERVICE_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        name = _clean_service_name(m.group(1))
        if 3 <= len(name) < 40 and not is_common_word(name):
            if should_disable:
                return ActionableItem(
                    type=ActionItemType.DISABLE_SERVICE,
                    description=f"Disable service: {name}",
                    raw_text=text,
                    details={"ServiceName": name},
                )
            return ActionableItem(
                type=ActionItemType.ENABLE_SERVICE,
                description=f"Enable/ensure running: {name}",
                raw_text=text,
                details={"ServiceName": name},
            )
    return None


def _parse_software_item(text: str) -> Optional[ActionableItem]:
    lowered = text.lower()
    if "user" in lowered or "account" in lowered or "home director" in lowered:
        return None

    should_install = "install" in lowered or "update" in lowered
    should_remove = "uninstall" in lowered or "remove" in lowered
    if not should_install and not should_remove:
        return None

    for pattern in _ITEM_SOFTWARE_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        name = m.group(1).strip()
        if 2 <= len(name) < 30 and not is_common_word(name) and name[0].isupper():
            if should_remove:
                return ActionableItem(
                    type=ActionItemType.REMOVE_SOFTWARE,
                    description=f"Remove software: {name}",
                    raw_text=text,
                    details={"SoftwareName": name},
                )
            return ActionableItem(
                type=ActionItemType.INSTALL_SOFTWARE,
                description=f"Install/update software: {name}",
                raw_text=text,
                details={"SoftwareName": name},
            )
    return None


def _parse_security_policy_item(text: str) -> Optional[ActionableItem]:
    lowered = text.lower()
    if "password" in lowered:
        category = "Password Policy"
        if "complexity" in lowered:
            description = "Configure password complexity requirements"
        elif "length" in lowered:
            description = "Configure password length requirements"
        elif "history" in lowered:
            description = "Configure password history policy"
        elif "age" in lowered or "expir" in lowered:
            description = "Configure password expiration policy"
        else:
            description = "Configure password policy"
    elif "firewall" in lowered:
        category, description = "Firewall", "Configure Windows Firewall settings"
    elif "audit" in lowered:
        category, description = "Audit Policy", "Configure audit policy settings"
    elif "action center" in lowered:
        category, description = "Action Center", "Configure Windows Action Center"
    elif "defender" in lowered or "antivirus" in lowered:
        category, description = "Antivirus", "Configure Windows Defender/Antivirus"
    else:
        category, description = "General", "Configure local security policy settings"

    return ActionableItem(
        type=ActionItemType.SECURITY_POLICY,
        description=description,
        raw_text=text,
        details={"Category": category},
    )


def _parse_file_operation_item(text: str) -> Optional[ActionableItem]:
    lowered = text.lower()
    if "user" in lowered and "account" in lowered:
        return None
    if "do not remove" in lowered or "don't remove" in lowered:
        return None
    if not ("delete" in lowered or "remove" in lowered):
        return None
    if not ("file" in lowered or "media" in lowered):
        return None

    if "media" in lowered and "prohibited" in lowered:
        return ActionableItem(
            type=ActionItemType.FILE_OPERATION,
            description="Remove prohibited media files",
            raw_text=text,
            details={"FileType": "Media files"},
        )
    if "hacking" in lowered or "unauthorized" in lowered:
        return ActionableItem(
            type=ActionItemType.FILE_OPERATION,
            description="Remove unauthorized/hacking tool files",
            raw_text=text,
            details={"FileType": "Unauthorized software/tools"},
        )
    return None


ITEM_DETECTORS: tuple[ItemDetector, ...] = (
    ItemDetector("user-creation", _mentions_user_creation, _parse_user_creation_item),
    ItemDetector("group-management", _mentions_group, _parse_group_item),
    ItemDetector("service", _mentions_service, _parse_service_item),
    ItemDetector("software", _mentions_software, _parse_software_item),
    ItemDetector("security-policy", _mentions_security_policy, _parse_security_policy_item),
    ItemDetector("file-operation", _mentions_file_operation, _parse_file_operation_item),
)


def _is_duplicate_item(items: list[ActionableItem], item: ActionableItem) -> bool:
    return any(existing.type == item.type and existing.description == item.description for existing in items)


class ReadmeParser:
    def __init__(
        self,
        *,
        max_username_line: int = MAX_USERNAME_LINE,
        primary_marker: str = PRIMARY_USER_MARKER,
        min_paragraph_length: int = MIN_PARAGRAPH_LENGTH,
    ):
        self.max_username_line = max_username_line
        self.primary_marker = primary_marker
        self.min_paragraph_length = min_paragraph_length
        self.item_detectors = ITEM_DETECTORS
        self._marker_re = re.compile(r"\s*" + re.escape(primary_marker) + r"\s*", re.IGNORECASE)

    def parse_file(self, file_path: str | Path) -> PolicyDocument:
        """Load and parse a README, reporting load failures instead of raising."""
        try:
            text = read_readme_text(file_path)
        except FileNotFoundError:
            print(f"{Fore.RED}[!] README file not found: {file_path}", file=sys.stderr)
            return PolicyDocument()
        except OSError as exc:
            print(f"{Fore.RED}[!] Error reading README {file_path}: {exc}", file=sys.stderr)
            return PolicyDocument()
        return self.parse_text(text)

    def parse_text(self, text: str) -> PolicyDocument:
        content = html.unescape(text or "")
        document = PolicyDocument()
        try:
            soup = BeautifulSoup(content, "html.parser")
            document.title = self._extract_title(content, soup)
            document.operating_system = self._detect_operating_system(content)
            document.sections = self._extract_sections(content)
            self._parse_authorized_users(content, document)
            self._parse_software(content, document)
            self._parse_services(content, document)
            self._parse_group_requirements(content, document)
            self._parse_users_to_create(content, document)
            self._parse_actionable_items(soup, document)
            self._parse_guidelines(content, document)
            document.scenario = self._extract_scenario(content)
            self._enforce_critical_services(document)
        except Exception as exc:
            print(f"{Fore.RED}[!] Error parsing README: {exc}", file=sys.stderr)
            return PolicyDocument()
        return document

    def _extract_title(self, content: str, soup: BeautifulSoup) -> str:
        m = _H1_RE.search(content)
        if m:
            title = _strip_tags(m.group(1))
            if title:
                return title
        if soup.title:
            title = _normalize_space(soup.title.get_text(" "))
            if title:
                return title
        return "Unknown"

    def _detect_operating_system(self, content: str) -> str:
        lowered = content.lower()
        for needle, label in OPERATING_SYSTEMS:
            if needle in lowered:
                return label
        return "Unknown"

    def _extract_sections(self, content: str) -> SectionMap:
        pairs: list[tuple[str, str]] = []
        for m in _SECTION_RE.finditer(content):
            heading = _strip_tags(m.group(1))
            if heading:
                pairs.append((heading, m.group(2)))
        return SectionMap(pairs)

    def _extract_scenario(self, content: str) -> str:
        m = _SCENARIO_RE.search(content)
        return _strip_tags(m.group(1)) if m else ""

    def _parse_authorized_users(self, content: str, document: PolicyDocument) -> None:
        m = _ADMIN_BLOCK_RE.search(content)
        if m:
            self._parse_user_block(m.group(0), document)
            return

        for pre in _PRE_RE.finditer(content):
            block = pre.group(1)
            lowered = block.lower()
            if "authorized" in lowered or "administrator" in lowered or "password" in lowered:
                self._parse_user_block(block, document)
                return

    def _parse_user_block(self, block: str, document: PolicyDocument) -> None:
        cleaned = html.unescape(_TAG_RE.sub("", block))
        lines = [ln.strip() for ln in cleaned.splitlines() if ln.strip()]

        in_admin_section = False
        in_user_section = False
        # The user under construction and the list it belongs to.
        pending: Optional[AuthorizedUser] = None
        target: Optional[list[AuthorizedUser]] = None

        def flush() -> None:
            if pending is not None and target is not None:
                target.append(pending)

        for line in lines:
            lowered = line.lower()

            if "authorized administrators" in lowered or "authorized admins" in lowered:
                in_admin_section, in_user_section = True, False
                continue
            if "authorized users" in lowered or "authorized user" in lowered:
                in_admin_section, in_user_section = False, True
                continue

            if _PASSWORD_LINE_RE.match(lowered):
                if pending is not None:
                    password = line[line.index(":") + 1:].strip()
                    pending = replace(pending, password=password or None)
                continue

            if lowered.startswith("password") or "authorized" in lowered or line.startswith("<"):
                continue
            if len(line) >= self.max_username_line:
                continue

            is_primary = self.primary_marker.lower() in lowered
            username = self._marker_re.sub("", line).strip() if is_primary else line
            if not is_valid_username(username):
                continue

            flush()
            if in_admin_section:
                pending, target = AuthorizedUser(username, is_admin=True, is_primary_user=is_primary), document.administrators
            elif in_user_section:
                pending, target = AuthorizedUser(username, is_admin=False, is_primary_user=is_primary), document.users
            else:
                pending, target = None, None

        flush()

    def _parse_software(self, content: str, document: PolicyDocument) -> None:
        lowered = content.lower()

        for keyword in PROHIBITED_SOFTWARE_KEYWORDS:
            if keyword in lowered:
                _append_unique(document.prohibited_software, keyword)

        found: list[str] = []
        for pattern in _REQUIRED_SOFTWARE_PATTERNS:
            for m in pattern.finditer(content):
                for candidate in _SOFTWARE_LIST_SPLIT_RE.split(m.group(1).strip()):
                    name = candidate.strip().strip(",. ")
                    if len(name) < 2 or len(name) > 50 or name.lower() in SOFTWARE_STOP_WORDS:
                        continue
                    if not _append_unique(found, name):
                        continue
                    document.required_software.append(
                        SoftwareRequirement(
                            name=name,
                            should_be_latest="latest" in lowered and name.lower() in lowered,
                            is_required=True,
                        )
                    )

        if any(p in lowered for p in STORE_RESTRICTION_PHRASES):
            document.required_software = [
                replace(s, notes=f"{s.notes} {STORE_RESTRICTION_NOTE}" if s.notes else STORE_RESTRICTION_NOTE)
                for s in document.required_software
            ]

    def _parse_services(self, content: str, document: PolicyDocument) -> None:
        m = _CRITICAL_SERVICES_RE.search(content)
        if m:
            body = m.group(1)
            if "none" not in _strip_tags(body).lower():
                for service in _list_items(body):
                    if service.lower() != "none" and "(none)" not in service:
                        _append_unique(document.critical_services, service)

        for pattern in _DISABLE_SERVICE_PATTERNS:
            for m in pattern.finditer(content):
                if _NEGATION_TAIL_RE.search(content, 0, m.start()):
                    continue
                service = _clean_service_name(m.group(1))
                if not service or len(service) >= 50:
                    continue
                if _contains_ci(document.critical_services, service):
                    continue
                _append_unique(document.prohibited_services, service)

        # Must stay the last step of this pass.
        self._apply_scoring_service_override(content.lower(), document)

    def _apply_scoring_service_override(self, lowered: str, document: PolicyDocument) -> None:
        if "do not stop" not in lowered or SCORING_SERVICE.lower() not in lowered:
            return
        token = SCORING_SERVICE_TOKEN.lower()
        document.prohibited_services = [s for s in document.prohibited_services if token not in s.lower()]
        _append_unique(document.critical_services, SCORING_SERVICE)

    def _parse_group_requirements(self, content: str, document: PolicyDocument) -> None:
        m = _GROUP_REQUIREMENT_RE.search(content)
        if not m:
            return
        group_name = m.group(1).strip()
        members: list[str] = []
        for token in _MEMBER_SPLIT_RE.split(_strip_tags(m.group(2))):
            member = token.strip().rstrip(",.;:!?")
            if not member or member.lower() in LIST_CONJUNCTIONS:
                continue
            if is_valid_username(member):
                _append_unique(members, member)
        if group_name and members:
            document.group_requirements.append(GroupRequirement(group_name=group_name, members=members))

    def _parse_users_to_create(self, content: str, document: PolicyDocument) -> None:
        for pattern in _NEW_USER_PATTERNS:
            for m in pattern.finditer(content):
                username = m.group(1).strip()
                if _is_new_username(username):
                    _append_unique(document.users_to_create, username)

    def _parse_actionable_items(self, soup: BeautifulSoup, document: PolicyDocument) -> None:
        for paragraph in soup.find_all("p"):
            text = _normalize_space(paragraph.get_text(" "))
            if len(text) < self.min_paragraph_length:
                continue
            lowered = text.lower()

            for detector in self.item_detectors:
                if not detector.matches(lowered):
                    continue
                item = detector.parse(text)
                if item is None or _is_duplicate_item(document.actionable_items, item):
                    continue
                document.actionable_items.append(item)
                if item.type is ActionItemType.CREATE_USER:
                    _append_unique(document.users_to_create, item.details["Username"])

            if _mentions_service(lowered):
                protected = _protected_service_name(text)
                if protected:
                    _append_unique(document.critical_services, protected)

    def _parse_guidelines(self, content: str, document: PolicyDocument) -> None:
        if "Competition Guidelines" in document.sections:
            body = document.sections["Competition Guidelines"]
        else:
            m = _GUIDELINES_RE.search(content)
            if not m:
                return
            body = m.group(1)
        document.guidelines.extend(_list_items(body))

    def _enforce_critical_services(self, document: PolicyDocument) -> None:
        document.prohibited_services = [
            s for s in document.prohibited_services if not document.is_critical_service(s)
        ]
        document.actionable_items = [
            item for item in document.actionable_items
            if not (item.type is ActionItemType.DISABLE_SERVICE
                    and document.is_critical_service(item.details["ServiceName"]))
        ]


def parse_readme(file_path: str | Path) -> PolicyDocument:
    return ReadmeParser().parse_file(file_path)


def print_banner(title: str) -> None:
    print(f"\n{Fore.CYAN}{'='*60}")
    print(f"{Fore.CYAN} README: {Fore.WHITE}{Style.BRIGHT}{title}")
    print(f"{Fore.CYAN}{'='*60}")


_ITEM_COLORS: dict[ActionItemType, str] = {
    ActionItemType.CREATE_USER: Fore.YELLOW,
    ActionItemType.CREATE_GROUP: Fore.CYAN,
    ActionItemType.ADD_USER_TO_GROUP: Fore.CYAN,
    ActionItemType.REMOVE_USER_FROM_GROUP: Fore.CYAN,
    ActionItemType.ENABLE_SERVICE: Fore.BLUE,
    ActionItemType.DISABLE_SERVICE: Fore.BLUE,
    ActionItemType.INSTALL_SOFTWARE: Fore.GREEN,
    ActionItemType.REMOVE_SOFTWARE: Fore.GREEN,
    ActionItemType.SECURITY_POLICY: Fore.RED,
    ActionItemType.FILE_OPERATION: Fore.MAGENTA,
}


def print_policy(document: PolicyDocument) -> None:
    print_banner(document.title or "Unknown")
    print(f"{Style.BRIGHT}Operating System: {Fore.CYAN}{document.operating_system or 'Unknown'}")

    if document.scenario:
        print(f"\n{Style.BRIGHT}[Scenario]")
        print(f"  {document.scenario}")

    if document.administrators:
        print(f"\n{Style.BRIGHT}{Fore.RED}[Authorized Administrators]")
        for admin in document.administrators:
            primary = f" {Fore.YELLOW}(primary user)" if admin.is_primary_user else ""
            print(f"{Fore.RED}  {admin.username}  password: {admin.password or 'N/A'}{primary}")

    if document.users:
        print(f"\n{Style.BRIGHT}{Fore.GREEN}[Authorized Users]")
        for user in document.users:
            print(f"{Fore.GREEN}  {user.username}")

    if document.users_to_create:
        print(f"\n{Style.BRIGHT}{Fore.YELLOW}[Users to Create]")
        for name in document.users_to_create:
            print(f"{Fore.YELLOW}  + {name}")

    if document.group_requirements:
        print(f"\n{Style.BRIGHT}{Fore.CYAN}[Group Requirements]")
        for group in document.group_requirements:
            print(f"{Fore.CYAN}  {group.group_name}: {', '.join(group.members)}")

    if document.required_software:
        print(f"\n{Style.BRIGHT}{Fore.BLUE}[Required Software]")
        for software in document.required_software:
            version = "latest stable" if software.should_be_latest else (software.version or "any")
            notes = f"  ({software.notes})" if software.notes else ""
            print(f"{Fore.BLUE}  {software.name} [{version}]{notes}")

    if document.prohibited_software:
        print(f"\n{Style.BRIGHT}{Fore.RED}[Prohibited Software/Content]")
        for keyword in document.prohibited_software:
            print(f"{Fore.RED}  x {keyword}")

    if document.critical_services:
        print(f"\n{Style.BRIGHT}{Fore.GREEN}[Critical Services (do NOT disable)]")
        for service in document.critical_services:
            print(f"{Fore.GREEN}  * {service}")

    if document.prohibited_services:
        print(f"\n{Style.BRIGHT}{Fore.RED}[Services to Disable]")
        for service in document.prohibited_services:
            print(f"{Fore.RED}  o {service}")

    if document.actionable_items:
        print(f"\n{Style.BRIGHT}{Fore.MAGENTA}[Actionable Items]")
        for item_type in ActionItemType:
            items = [i for i in document.actionable_items if i.type is item_type]
            if not items:
                continue
            color = _ITEM_COLORS.get(item_type, Fore.WHITE)
            print(f"{Style.BRIGHT}{color}  {item_type.value}")
            for item in items:
                print(f"{color}    -> {item.description}")
                for key, value in item.details.items():
                    print(f"       {key}: {value}")

    if document.guidelines:
        print(f"\n{Style.BRIGHT}{Fore.YELLOW}[Competition Guidelines]")
        for guideline in document.guidelines:
            print(f"  {Fore.YELLOW}-{Style.RESET_ALL} {guideline}")


def export_json(document: PolicyDocument, output_path: Path) -> None:
    payload = {
        "generated_at": _utc_now_iso(),
        "tool": TOOL_NAME,
        "document": document.to_dict(),
    }
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def export_csv(document: PolicyDocument, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = ["type", "description", "details", "raw_text"]
    with output_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for item in document.actionable_items:
            writer.writerow({
                "type": item.type.value,
                "description": item.description,
                "details": "; ".join(f"{k}={v}" for k, v in item.details.items()),
                "raw_text": item.raw_text,
            })


def _validate_input_path(readme_path: str) -> Path:
    path = Path(readme_path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    if not path.is_file():
        raise IsADirectoryError(str(path))
    return path


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "CyberPatriot README Parser\n\n"
            "Extracts the hardening policy (authorized accounts, software and service rules, "
            "groups, guidelines, actionable items) from a competition README."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "What this tool does:\n"
            "  - Reads the README HTML and decodes character entities.\n"
            "  - Splits it into <h2> sections.\n"
            "  - Extracts authorized administrators (with passwords) and users.\n"
            "  - Extracts required software and prohibited software keywords.\n"
            "  - Extracts critical services and services to disable; the scoring\n"
            "    service (CCS Client) is never listed for disabling.\n"
            "  - Extracts group requirements and new accounts to create.\n"
            "  - Classifies paragraph text into actionable items for review.\n"
            "  - Optional exports: JSON (whole document) and CSV (actionable items).\n\n"
            "Examples:\n"
            "  cpreadme --readme README.html\n"
            "  cpreadme --auto-readme --json-out policy.json\n"
            "  cpreadme -r README.html --csv-out items.csv --quiet\n"
        ),
    )
    parser.add_argument("-r", "--readme", help="Input README HTML file")
    parser.add_argument("-R", "--auto-readme", action="store_true", help="Search the default README locations")
    parser.add_argument("--json-out", help="Write the parsed document to JSON")
    parser.add_argument("--csv-out", help="Write actionable items to CSV")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print the parsed summary")

    args = parser.parse_args(argv)

    if not args.readme and not args.auto_readme:
        parser.print_help(sys.stderr)
        return 2

    if args.readme:
        try:
            readme_file = _validate_input_path(args.readme)
        except Exception as exc:
            print(f"{Fore.RED}[!] Input error: {exc}", file=sys.stderr)
            return 2
    else:
        readme_file = find_readme_file()
        if readme_file is None:
            print(f"{Fore.RED}[!] No README found in the default locations.", file=sys.stderr)
            return 2
        print(f"{Fore.GREEN}[+] Found README: {readme_file}")

    document = ReadmeParser().parse_file(readme_file)

    if not args.quiet:
        print_policy(document)

    if args.json_out:
        try:
            export_json(document, Path(args.json_out))
            print(f"{Fore.GREEN}[+] Wrote JSON: {args.json_out}")
        except Exception as exc:
            print(f"{Fore.RED}[!] JSON export error: {exc}", file=sys.stderr)

    if args.csv_out:
        try:
            export_csv(document, Path(args.csv_out))
            print(f"{Fore.GREEN}[+] Wrote CSV: {args.csv_out}")
        except Exception as exc:
            print(f"{Fore.RED}[!] CSV export error: {exc}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
