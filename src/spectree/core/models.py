"""
Data model for the normalized spec hierarchy.

Epics, features, user stories and tasks are held in one id-indexed mapping
per level. Parent fields and child-id lists cross-reference each other; the
order of a child-id list is display order.
"""

import copy
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union


class ItemType(str, Enum):
    """Hierarchy levels, in containment order."""

    EPIC = "epic"
    FEATURE = "feature"
    USER_STORY = "user_story"
    TASK = "task"


# Level one above each non-root type
PARENT_TYPES: Dict[ItemType, ItemType] = {
    ItemType.FEATURE: ItemType.EPIC,
    ItemType.USER_STORY: ItemType.FEATURE,
    ItemType.TASK: ItemType.USER_STORY,
}

CHILD_TYPES: Dict[ItemType, ItemType] = {
    parent: child for child, parent in PARENT_TYPES.items()
}

TYPE_LABELS: Dict[ItemType, str] = {
    ItemType.EPIC: "Epic",
    ItemType.FEATURE: "Feature",
    ItemType.USER_STORY: "User Story",
    ItemType.TASK: "Task",
}

# Attribute names per level
PARENT_FIELDS: Dict[ItemType, str] = {
    ItemType.EPIC: "parent_app_id",
    ItemType.FEATURE: "parent_epic_id",
    ItemType.USER_STORY: "parent_feature_id",
    ItemType.TASK: "parent_user_story_id",
}

CHILD_FIELDS: Dict[ItemType, str] = {
    ItemType.EPIC: "feature_ids",
    ItemType.FEATURE: "user_story_ids",
    ItemType.USER_STORY: "task_ids",
}

LEVEL_NAMES: Dict[ItemType, str] = {
    ItemType.EPIC: "epics",
    ItemType.FEATURE: "features",
    ItemType.USER_STORY: "user_stories",
    ItemType.TASK: "tasks",
}


def coerce_item_type(value: Union[ItemType, str]) -> ItemType:
    """Accept an ItemType or its string value (``userStory`` is tolerated)."""
    if isinstance(value, ItemType):
        return value
    normalized = str(value).strip()
    if normalized == "userStory":
        normalized = ItemType.USER_STORY.value
    return ItemType(normalized.lower())


@dataclass
class ContextualQuestion:
    id: str
    question: str = ""
    answer: str = ""


@dataclass
class RiskMitigation:
    risk: str = ""
    mitigation: str = ""


@dataclass
class AcceptanceCriterion:
    text: str = ""


@dataclass
class Epic:
    id: str
    parent_app_id: str
    title: str = ""
    description: str = ""
    goal: str = ""
    success_criteria: str = ""
    dependencies: str = ""
    timeline: str = ""
    resources: str = ""
    notes: str = ""
    risks_and_mitigation: List[RiskMitigation] = field(default_factory=list)
    feature_ids: List[str] = field(default_factory=list)
    contextual_questions: List[ContextualQuestion] = field(default_factory=list)


@dataclass
class Feature:
    id: str
    parent_epic_id: str
    title: str = ""
    description: str = ""
    details: str = ""
    dependencies: str = ""
    priority: str = ""
    effort: str = ""
    notes: str = ""
    acceptance_criteria: List[AcceptanceCriterion] = field(default_factory=list)
    user_story_ids: List[str] = field(default_factory=list)
    contextual_questions: List[ContextualQuestion] = field(default_factory=list)


@dataclass
class UserStory:
    id: str
    parent_feature_id: str
    title: str = ""
    role: str = ""
    action: str = ""
    goal: str = ""
    points: str = ""
    notes: str = ""
    development_order: int = 0
    acceptance_criteria: List[AcceptanceCriterion] = field(default_factory=list)
    task_ids: List[str] = field(default_factory=list)
    dependent_user_story_ids: List[str] = field(default_factory=list)
    contextual_questions: List[ContextualQuestion] = field(default_factory=list)


@dataclass
class Task:
    id: str
    parent_user_story_id: str
    title: str = ""
    details: str = ""
    priority: str = ""
    notes: str = ""
    dependent_task_ids: List[str] = field(default_factory=list)
    contextual_questions: List[ContextualQuestion] = field(default_factory=list)


Entity = Union[Epic, Feature, UserStory, Task]

ENTITY_CLASSES: Dict[ItemType, type] = {
    ItemType.EPIC: Epic,
    ItemType.FEATURE: Feature,
    ItemType.USER_STORY: UserStory,
    ItemType.TASK: Task,
}


NESTED_CLASSES: Dict[str, type] = {
    "contextual_questions": ContextualQuestion,
    "acceptance_criteria": AcceptanceCriterion,
    "risks_and_mitigation": RiskMitigation,
}


def _nested(value: Any, nested_class: type) -> Any:
    if not isinstance(value, list):
        return value
    names = {f.name for f in fields(nested_class)}
    return [
        nested_class(**{k: v for k, v in item.items() if k in names})
        for item in value
        if isinstance(item, Mapping)
    ]


def _entity_from_dict(entity_class: type, data: Any) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"{entity_class.__name__} entry must be an object")
    kwargs = {}
    for f in fields(entity_class):
        if f.name not in data:
            continue
        value = data[f.name]
        if f.name in NESTED_CLASSES:
            value = _nested(value, NESTED_CLASSES[f.name])
        kwargs[f.name] = value
    # id and parent field lead every entity class
    missing = [f.name for f in fields(entity_class)[:2] if f.name not in kwargs]
    if missing:
        raise ValueError(f"{entity_class.__name__} entry is missing {', '.join(missing)}")
    return entity_class(**kwargs)


@dataclass
class HierarchyStore:
    """
    Normalized, id-indexed snapshot of one application's spec tree.

    Attributes:
        id: Application (root) id; every epic's parent_app_id points here
        chat_api: Chat API key/identifier carried alongside the tree
        global_information: Free-text context shared by the whole tree
        selected_model: Model identifier used for generation
        epics/features/user_stories/tasks: One mapping per level, keyed by id
        contextual_questions: App-level contextual questions
    """

    id: str = ""
    chat_api: str = ""
    global_information: str = ""
    selected_model: str = ""
    epics: Dict[str, Epic] = field(default_factory=dict)
    features: Dict[str, Feature] = field(default_factory=dict)
    user_stories: Dict[str, UserStory] = field(default_factory=dict)
    tasks: Dict[str, Task] = field(default_factory=dict)
    contextual_questions: List[ContextualQuestion] = field(default_factory=list)

    def level(self, item_type: Union[ItemType, str]) -> Dict[str, Any]:
        """Return the id -> entity mapping for a hierarchy level."""
        return getattr(self, LEVEL_NAMES[coerce_item_type(item_type)])

    def get(self, item_type: Union[ItemType, str], item_id: Optional[str]) -> Optional[Any]:
        if item_id is None:
            return None
        return self.level(item_type).get(item_id)

    def parent_id_of(self, item_type: Union[ItemType, str], item_id: str) -> Optional[str]:
        item_type = coerce_item_type(item_type)
        entity = self.get(item_type, item_id)
        if entity is None:
            return None
        return getattr(entity, PARENT_FIELDS[item_type]) or None

    def child_ids_of(self, item_type: Union[ItemType, str], item_id: str) -> List[str]:
        item_type = coerce_item_type(item_type)
        if item_type not in CHILD_FIELDS:
            return []
        entity = self.get(item_type, item_id)
        if entity is None:
            return []
        return list(getattr(entity, CHILD_FIELDS[item_type]) or [])

    def counts(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in LEVEL_NAMES.values()}

    def copy(self) -> "HierarchyStore":
        """Deep copy, so a commit can produce a new snapshot."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HierarchyStore":
        """
        Rebuild a store from its to_dict() form.

        Unknown keys are ignored. List fields holding something other than a
        list are kept as-is so check_integrity can report them.

        Raises:
            ValueError: If a level or entry has the wrong shape.
        """
        store = cls(
            id=str(data.get("id", "")),
            chat_api=str(data.get("chat_api", "")),
            global_information=str(data.get("global_information", "")),
            selected_model=str(data.get("selected_model", "")),
            contextual_questions=_nested(data.get("contextual_questions", []), ContextualQuestion),
        )
        for item_type, level_name in LEVEL_NAMES.items():
            entries = data.get(level_name) or {}
            if not isinstance(entries, Mapping):
                raise ValueError(f"'{level_name}' must be an object keyed by id")
            entity_class = ENTITY_CLASSES[item_type]
            level = store.level(item_type)
            for key, entry in entries.items():
                level[key] = _entity_from_dict(entity_class, entry)
        return store
