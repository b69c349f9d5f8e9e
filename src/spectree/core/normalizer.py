"""
Normalization of nested spec payloads into a HierarchyStore.

The remote source delivers an application as a nested tree: epics carry
``features[]``, features carry ``userStories[]``, user stories carry
``tasks[]``. Normalization flattens that tree into one id-indexed mapping per
level and replaces every embedded list with an ordered list of child ids,
setting each child's parent field on the way down.

Malformed entries never abort an import. They are skipped (together with
anything embedded beneath them) and recorded in a NormalizationReport.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from spectree.core.models import (
    CHILD_TYPES,
    PARENT_TYPES,
    AcceptanceCriterion,
    ContextualQuestion,
    Epic,
    Feature,
    HierarchyStore,
    ItemType,
    RiskMitigation,
    Task,
    UserStory,
)

logger = logging.getLogger(__name__)

# Baseline model recorded on every normalized store unless overridden
DEFAULT_MODEL = "gpt-3.5-turbo-16k"

# Default policies for list fields the source may omit. Feature acceptance
# criteria get a single empty placeholder row; every other list starts empty.
DEFAULT_RISKS_AND_MITIGATION: Tuple[Dict[str, str], ...] = ()
DEFAULT_FEATURE_ACCEPTANCE_CRITERIA: Tuple[Dict[str, str], ...] = ({"text": ""},)
DEFAULT_USER_STORY_ACCEPTANCE_CRITERIA: Tuple[Dict[str, str], ...] = ()
DEFAULT_CONTEXTUAL_QUESTIONS: Tuple[Dict[str, str], ...] = ()
DEFAULT_DEVELOPMENT_ORDER = 0

DEFAULT_POLICIES: Dict[str, Any] = {
    "epic.risksAndMitigation": DEFAULT_RISKS_AND_MITIGATION,
    "feature.acceptanceCriteria": DEFAULT_FEATURE_ACCEPTANCE_CRITERIA,
    "user_story.acceptanceCriteria": DEFAULT_USER_STORY_ACCEPTANCE_CRITERIA,
    "user_story.developmentOrder": DEFAULT_DEVELOPMENT_ORDER,
    "*.contextualQuestions": DEFAULT_CONTEXTUAL_QUESTIONS,
}

# Wire key for the external id of every node
ID_KEY = "documentId"

# Embedded child list key per level
CHILD_LIST_KEYS: Dict[ItemType, str] = {
    ItemType.EPIC: "features",
    ItemType.FEATURE: "userStories",
    ItemType.USER_STORY: "tasks",
}

# Free-text fields: attribute name -> wire key
EPIC_TEXT_FIELDS = {
    "title": "title",
    "description": "description",
    "goal": "goal",
    "success_criteria": "successCriteria",
    "dependencies": "dependencies",
    "timeline": "timeline",
    "resources": "resources",
    "notes": "notes",
}

FEATURE_TEXT_FIELDS = {
    "title": "title",
    "description": "description",
    "details": "details",
    "dependencies": "dependencies",
    "priority": "priority",
    "effort": "effort",
    "notes": "notes",
}

USER_STORY_TEXT_FIELDS = {
    "title": "title",
    "role": "role",
    "action": "action",
    "goal": "goal",
    "points": "points",
    "notes": "notes",
}

TASK_TEXT_FIELDS = {
    "title": "title",
    "details": "details",
    "priority": "priority",
    "notes": "notes",
}


@dataclass
class SkippedItem:
    """A source entry that could not be normalized."""

    item_type: ItemType
    index: int  # Position within its embedded list
    parent_id: Optional[str]
    reason: str
    item_id: Optional[str] = None


@dataclass
class NormalizationReport:
    """Caller-visible account of what normalization dropped or repaired."""

    skipped: List[SkippedItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skipped_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for item in self.skipped:
            counts[item.item_type.value] = counts.get(item.item_type.value, 0) + 1
        return counts


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _external_id(entry: Mapping[str, Any]) -> Optional[str]:
    raw_id = entry.get(ID_KEY)
    if isinstance(raw_id, bool) or raw_id is None:
        return None
    if isinstance(raw_id, (str, int)):
        text = str(raw_id).strip()
        return text or None
    return None


def _list_field(
    entry: Mapping[str, Any],
    key: str,
    location: str,
    report: NormalizationReport,
) -> Optional[List[Any]]:
    """Return entry[key] if it is a list; None if absent or malformed."""
    value = entry.get(key)
    if value is None:
        return None
    if isinstance(value, list):
        return value
    message = f"{location}: '{key}' is {type(value).__name__}, expected a list; treated as empty"
    report.warnings.append(message)
    logger.warning(message)
    return None


def _copy_default(policy: Tuple[Dict[str, str], ...]) -> List[Dict[str, str]]:
    return [copy.deepcopy(item) for item in policy]


def _contextual_questions(
    entry: Mapping[str, Any], location: str, report: NormalizationReport
) -> List[ContextualQuestion]:
    raw = _list_field(entry, "contextualQuestions", location, report)
    if raw is None:
        raw = _copy_default(DEFAULT_CONTEXTUAL_QUESTIONS)
    questions = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        questions.append(
            ContextualQuestion(
                id=_text(item.get(ID_KEY, item.get("id"))),
                question=_text(item.get("question")),
                answer=_text(item.get("answer")),
            )
        )
    return questions


def _acceptance_criteria(
    entry: Mapping[str, Any],
    default: Tuple[Dict[str, str], ...],
    location: str,
    report: NormalizationReport,
) -> List[AcceptanceCriterion]:
    raw = _list_field(entry, "acceptanceCriteria", location, report)
    if raw is None:
        raw = _copy_default(default)
    criteria = []
    for item in raw:
        if isinstance(item, Mapping):
            criteria.append(AcceptanceCriterion(text=_text(item.get("text"))))
        elif isinstance(item, str):
            criteria.append(AcceptanceCriterion(text=item))
    return criteria


def _risks(
    entry: Mapping[str, Any], location: str, report: NormalizationReport
) -> List[RiskMitigation]:
    raw = _list_field(entry, "risksAndMitigation", location, report)
    if raw is None:
        raw = _copy_default(DEFAULT_RISKS_AND_MITIGATION)
    return [
        RiskMitigation(risk=_text(item.get("risk")), mitigation=_text(item.get("mitigation")))
        for item in raw
        if isinstance(item, Mapping)
    ]


def _development_order(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_DEVELOPMENT_ORDER
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_DEVELOPMENT_ORDER


def _text_fields(entry: Mapping[str, Any], mapping: Dict[str, str]) -> Dict[str, str]:
    return {attr: _text(entry.get(key)) for attr, key in mapping.items()}


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def _skip_subtree(
    entry: Any,
    item_type: ItemType,
    index: int,
    parent_id: Optional[str],
    reason: str,
    report: NormalizationReport,
) -> None:
    """Record entry and everything embedded beneath it as skipped."""
    item_id = _external_id(entry) if isinstance(entry, Mapping) else None
    report.skipped.append(
        SkippedItem(
            item_type=item_type,
            index=index,
            parent_id=parent_id,
            reason=reason,
            item_id=item_id,
        )
    )
    if not isinstance(entry, Mapping) or item_type not in CHILD_LIST_KEYS:
        return
    children = entry.get(CHILD_LIST_KEYS[item_type])
    if not isinstance(children, list):
        return
    child_type = CHILD_TYPES[item_type]
    for child_index, child in enumerate(children):
        _skip_subtree(child, child_type, child_index, item_id, "ancestor skipped", report)


def _accept(
    entry: Any,
    item_type: ItemType,
    index: int,
    parent_id: str,
    level: Dict[str, Any],
    report: NormalizationReport,
) -> Optional[str]:
    """Return the entry's id if it can be added to level, else record a skip."""
    if not isinstance(entry, Mapping):
        _skip_subtree(entry, item_type, index, parent_id, "entry is not an object", report)
        return None
    item_id = _external_id(entry)
    if item_id is None:
        _skip_subtree(entry, item_type, index, parent_id, f"missing '{ID_KEY}'", report)
        return None
    if item_id in level:
        _skip_subtree(entry, item_type, index, parent_id, f"duplicate id '{item_id}'", report)
        return None
    return item_id


def _walk_children(
    entry: Mapping[str, Any],
    item_type: ItemType,
    parent_id: str,
    level: Dict[str, Any],
    build: Callable[[Mapping[str, Any], str, str], Any],
    report: NormalizationReport,
) -> List[str]:
    """Normalize one embedded list into level; return accepted ids in order."""
    location = f"{item_type.value} list under '{parent_id}'"
    raw_children = _list_field(entry, CHILD_LIST_KEYS[PARENT_TYPES[item_type]], location, report)
    accepted: List[str] = []
    for index, child in enumerate(raw_children or []):
        child_id = _accept(child, item_type, index, parent_id, level, report)
        if child_id is None:
            continue
        level[child_id] = build(child, child_id, parent_id)
        accepted.append(child_id)
    return accepted


def normalize_tree(
    raw_tree: Optional[Mapping[str, Any]],
    chat_api: Optional[str],
    root_id: str,
    *,
    selected_model: str = DEFAULT_MODEL,
) -> Tuple[HierarchyStore, NormalizationReport]:
    """
    Normalize a nested application payload.

    Args:
        raw_tree: Nested payload as delivered by the remote source
        chat_api: Chat API identifier; None is stored as ""
        root_id: Application id; becomes every epic's parent_app_id
        selected_model: Model identifier recorded on the store

    Returns:
        Tuple of (store, report). The report lists every skipped entry.
    """
    report = NormalizationReport()
    store = HierarchyStore(
        id=root_id,
        chat_api=chat_api or "",
        selected_model=selected_model,
    )

    if raw_tree is None:
        return store, report
    if not isinstance(raw_tree, Mapping):
        message = f"Payload is {type(raw_tree).__name__}, expected an object; nothing normalized"
        report.warnings.append(message)
        logger.warning(message)
        return store, report

    store.global_information = _text(raw_tree.get("globalInformation"))
    store.contextual_questions = _contextual_questions(raw_tree, "application", report)

    def build_task(entry: Mapping[str, Any], task_id: str, parent_id: str) -> Task:
        return Task(
            id=task_id,
            parent_user_story_id=parent_id,
            dependent_task_ids=[],
            contextual_questions=_contextual_questions(entry, f"task '{task_id}'", report),
            **_text_fields(entry, TASK_TEXT_FIELDS),
        )

    def build_user_story(entry: Mapping[str, Any], story_id: str, parent_id: str) -> UserStory:
        location = f"user story '{story_id}'"
        story = UserStory(
            id=story_id,
            parent_feature_id=parent_id,
            development_order=_development_order(entry.get("developmentOrder")),
            acceptance_criteria=_acceptance_criteria(
                entry, DEFAULT_USER_STORY_ACCEPTANCE_CRITERIA, location, report
            ),
            dependent_user_story_ids=[],
            contextual_questions=_contextual_questions(entry, location, report),
            **_text_fields(entry, USER_STORY_TEXT_FIELDS),
        )
        story.task_ids = _walk_children(
            entry, ItemType.TASK, story_id, store.tasks, build_task, report
        )
        return story

    def build_feature(entry: Mapping[str, Any], feature_id: str, parent_id: str) -> Feature:
        location = f"feature '{feature_id}'"
        feature = Feature(
            id=feature_id,
            parent_epic_id=parent_id,
            acceptance_criteria=_acceptance_criteria(
                entry, DEFAULT_FEATURE_ACCEPTANCE_CRITERIA, location, report
            ),
            contextual_questions=_contextual_questions(entry, location, report),
            **_text_fields(entry, FEATURE_TEXT_FIELDS),
        )
        feature.user_story_ids = _walk_children(
            entry, ItemType.USER_STORY, feature_id, store.user_stories, build_user_story, report
        )
        return feature

    raw_epics = _list_field(raw_tree, "epics", "application", report)
    for index, raw_epic in enumerate(raw_epics or []):
        epic_id = _accept(raw_epic, ItemType.EPIC, index, root_id, store.epics, report)
        if epic_id is None:
            continue
        location = f"epic '{epic_id}'"
        epic = Epic(
            id=epic_id,
            parent_app_id=root_id,
            risks_and_mitigation=_risks(raw_epic, location, report),
            contextual_questions=_contextual_questions(raw_epic, location, report),
            **_text_fields(raw_epic, EPIC_TEXT_FIELDS),
        )
        store.epics[epic_id] = epic
        epic.feature_ids = _walk_children(
            raw_epic, ItemType.FEATURE, epic_id, store.features, build_feature, report
        )

    logger.debug(
        "Normalized application %s: %s",
        root_id,
        store.counts(),
    )
    return store, report


def normalize(
    raw_tree: Optional[Mapping[str, Any]],
    chat_api: Optional[str],
    root_id: str,
    *,
    selected_model: str = DEFAULT_MODEL,
) -> HierarchyStore:
    """
    Normalize a nested application payload into a HierarchyStore.

    Skipped entries are logged as a warning; use normalize_tree() to
    inspect them.
    """
    store, report = normalize_tree(raw_tree, chat_api, root_id, selected_model=selected_model)
    if report.skipped:
        logger.warning(
            "Skipped %d malformed entries while normalizing %s: %s",
            report.skipped_count,
            root_id,
            report.skipped_by_type(),
        )
    return store


# ---------------------------------------------------------------------------
# Nested projection
# ---------------------------------------------------------------------------


def _questions_out(questions: List[ContextualQuestion]) -> List[Dict[str, str]]:
    return [{ID_KEY: q.id, "question": q.question, "answer": q.answer} for q in questions]


def _criteria_out(criteria: List[AcceptanceCriterion]) -> List[Dict[str, str]]:
    return [{"text": c.text} for c in criteria]


def _text_out(entity: Any, mapping: Dict[str, str]) -> Dict[str, str]:
    return {key: getattr(entity, attr) for attr, key in mapping.items()}


def denormalize(store: HierarchyStore) -> Dict[str, Any]:
    """
    Rebuild the nested wire payload from a store's child-id lists.

    Epics appear in mapping order and children in child-list order. Child ids
    that do not resolve are dropped.
    """

    def task_out(task: Task) -> Dict[str, Any]:
        return {
            ID_KEY: task.id,
            **_text_out(task, TASK_TEXT_FIELDS),
            "contextualQuestions": _questions_out(task.contextual_questions),
        }

    def story_out(story: UserStory) -> Dict[str, Any]:
        return {
            ID_KEY: story.id,
            **_text_out(story, USER_STORY_TEXT_FIELDS),
            "developmentOrder": story.development_order,
            "acceptanceCriteria": _criteria_out(story.acceptance_criteria),
            "contextualQuestions": _questions_out(story.contextual_questions),
            "tasks": [
                task_out(store.tasks[task_id])
                for task_id in story.task_ids
                if task_id in store.tasks
            ],
        }

    def feature_out(feature: Feature) -> Dict[str, Any]:
        return {
            ID_KEY: feature.id,
            **_text_out(feature, FEATURE_TEXT_FIELDS),
            "acceptanceCriteria": _criteria_out(feature.acceptance_criteria),
            "contextualQuestions": _questions_out(feature.contextual_questions),
            "userStories": [
                story_out(store.user_stories[story_id])
                for story_id in feature.user_story_ids
                if story_id in store.user_stories
            ],
        }

    epics = []
    for epic in store.epics.values():
        epics.append(
            {
                ID_KEY: epic.id,
                **_text_out(epic, EPIC_TEXT_FIELDS),
                "risksAndMitigation": [
                    {"risk": r.risk, "mitigation": r.mitigation}
                    for r in epic.risks_and_mitigation
                ],
                "contextualQuestions": _questions_out(epic.contextual_questions),
                "features": [
                    feature_out(store.features[feature_id])
                    for feature_id in epic.feature_ids
                    if feature_id in store.features
                ],
            }
        )

    return {
        "epics": epics,
        "contextualQuestions": _questions_out(store.contextual_questions),
        "globalInformation": store.global_information,
    }
