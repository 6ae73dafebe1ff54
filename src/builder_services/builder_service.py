"""
Builder Service - Data Access Layer

Per-entity facade over the SQLAlchemy ORM query builder. Subclasses supply the
default query and declare which filter and sort keys callers may use; the
service applies Modifiers through those allow-lists and runs validation-gated
writes.

    class TemplateService(BuilderService):
        def default_query(self):
            return filter_deleted(self.db.query(NotificationTemplate), NotificationTemplate)

        def available_filters(self):
            return {"type": equals(NotificationTemplate.template_type)}

        def available_sort(self):
            return {"created_at": order_by(NotificationTemplate.created_at)}

        def validation_rules_for_create(self):
            return {"template_name": str, "template_type": str, "content": str}
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy.orm import Query, Session

from . import config
from .exceptions import InvalidModifierValue, UnexpectedInputType, ValidationFailed
from .modifiers import Filter, Modifiers
from .pagination import PaginationResult
from .resolvers import AllowList, UnknownKeyPolicy
from .soft_delete import is_soft_deletable, mark_deleted
from .validation import RuleSet, Validator

logger = logging.getLogger(__name__)


class SkippedItem(NamedTuple):
    index: int
    data: Any
    errors: Dict[str, List[str]]


class CreatedBatch(list):
    """Entities created by create_many, in input order, plus the skipped elements"""

    def __init__(self, items: Iterable[Any] = (), skipped: Optional[Iterable[SkippedItem]] = None):
        super().__init__(items)
        self.skipped: List[SkippedItem] = list(skipped or [])


class BuilderService(ABC):
    """Base service exposing query, pagination and validated create/delete operations"""

    # Policy for filter/sort keys missing from the allow-lists, None reads config.
    unknown_keys: Union[UnknownKeyPolicy, str, None] = None

    def __init__(self, db: Session, filters: Optional[Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]] = None):
        self.db = db
        self._with_validation = True
        self._base_filters: List[Filter] = []
        self._create_validator: Optional[Validator] = None

        self._filter_resolvers: AllowList = dict(self.available_filters())
        self._sort_resolvers: AllowList = dict(self.available_sort())
        self._on_unknown = UnknownKeyPolicy.coerce(self.unknown_keys)

        if filters:
            items = filters.items() if isinstance(filters, Mapping) else filters
            for key, value in items:
                self.add_filter(key, value)

    # ========================================================================
    # Configuration hooks
    # ========================================================================

    @abstractmethod
    def default_query(self) -> Query:
        """Base query for the entity (table, default joins and ordering)"""

    def available_filters(self) -> AllowList:
        return {}

    def available_sort(self) -> AllowList:
        return {}

    def validation_rules_for_create(self) -> RuleSet:
        return {}

    @property
    def model(self) -> Any:
        """Mapped class the default query selects"""
        return self.default_query().column_descriptions[0]["entity"]

    # ========================================================================
    # Query construction
    # ========================================================================

    def builder(self, modifiers: Optional[Modifiers] = None) -> Query:
        return self._modify_query(self.default_query(), modifiers)

    def _modify_query(self, query: Query, modifiers: Optional[Modifiers] = None) -> Query:
        modifiers = modifiers.copy() if modifiers is not None else Modifiers()
        modifiers.filters(self._base_filters)

        logger.debug(f"{type(self).__name__}: applying {modifiers!r}")
        return modifiers.apply_to_query(query, self._filter_resolvers, self._sort_resolvers, self._on_unknown)

    def _key_criteria(self, id: Any, key: Union[str, Sequence[str], None] = None) -> List[Any]:
        model = self.model
        if key is None:
            mapper = inspect(model)
            names = [mapper.get_property_by_column(column).key for column in mapper.primary_key]
        elif isinstance(key, str):
            names = [key]
        else:
            names = list(key)

        values = id if isinstance(id, tuple) else (id,)
        if len(values) != len(names):
            raise InvalidModifierValue(f"Expected {len(names)} key value(s) for {names}, got {id!r}")

        criteria = []
        for name, value in zip(names, values):
            column = getattr(model, name, None)
            if column is None:
                raise InvalidModifierValue(f"{model.__name__} has no key column {name!r}")
            criteria.append(column == value)
        return criteria

    @staticmethod
    def _without_pagination(modifiers: Optional[Modifiers]) -> Optional[Modifiers]:
        if modifiers is None:
            return None
        return modifiers.copy().limit(None).offset(None)

    # ========================================================================
    # Reads
    # ========================================================================

    def get(self, modifiers: Optional[Modifiers] = None) -> List[Any]:
        return self.builder(modifiers).all()

    def first(self, modifiers: Optional[Modifiers] = None) -> Optional[Any]:
        return self.builder(modifiers).first()

    def count(self, modifiers: Optional[Modifiers] = None) -> int:
        """Number of rows matching the filters; limit, offset and sort are ignored"""
        return self.builder(self._without_pagination(modifiers)).order_by(None).count()

    def find(
        self,
        id: Any,
        key: Union[str, Sequence[str], None] = None,
        modifiers: Optional[Modifiers] = None,
    ) -> Optional[Any]:
        """
        First entity whose key equals id, or None

        Args:
            id: Key value, a tuple for composite keys
            key: Column name(s), defaults to the mapped primary key
            modifiers: Extra filters/sort applied on top of the key lookup
        """
        query = self.default_query().filter(*self._key_criteria(id, key))
        return self._modify_query(query, modifiers).first()

    def paginate(self, modifiers: Optional[Modifiers] = None, per_page: Optional[int] = None) -> PaginationResult:
        """
        Fetch one page of results with the total count

        The effective limit and offset are written back onto `modifiers`. Rows
        are only fetched when the count query matched something.
        """
        per_page = config.DEFAULT_PER_PAGE if per_page is None else per_page
        modifiers = modifiers if modifiers is not None else Modifiers()

        limit = modifiers.get_limit()
        limit = per_page if limit is None else limit
        offset = modifiers.get_offset()
        offset = 0 if offset is None else offset

        modifiers.limit(limit).offset(offset)

        total = self.count(modifiers)
        items = self.builder(modifiers).all() if total != 0 else []

        return PaginationResult(items=items, total=total, limit=limit, offset=offset)

    def to_sql(self, modifiers: Optional[Modifiers] = None) -> str:
        return str(self.builder(modifiers))

    # ========================================================================
    # Create
    # ========================================================================

    def create(self, data: Mapping[str, Any], opts: Optional[Dict[str, Any]] = None, validate: Optional[bool] = None) -> Any:
        """
        Validate and insert one entity

        Keys missing from the create rule set are dropped before insert.

        Raises:
            ValidationFailed: data does not satisfy the create rules
        """
        validated = self._validate(self.validator_for_create(), data, validate)

        try:
            instance = self._on_create(validated, opts or {})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(instance)
        logger.info(f"{type(self).__name__}: created {type(instance).__name__}")
        return instance

    def create_many(
        self,
        data: Iterable[Mapping[str, Any]],
        opts: Optional[Dict[str, Any]] = None,
        skip_errors: bool = False,
        validate: Optional[bool] = None,
    ) -> CreatedBatch:
        """
        Validate every element, then insert the valid ones in one transaction

        Args:
            data: Elements to create
            opts: Passed to the insert hook
            skip_errors: Drop invalid elements instead of aborting the batch
            validate: Override the service validation flag for this call

        Returns:
            CreatedBatch of created entities, with `skipped` listing dropped elements

        Raises:
            ValidationFailed: an element is invalid and skip_errors is False
        """
        validator = self.validator_for_create()

        validated: List[Dict[str, Any]] = []
        skipped: List[SkippedItem] = []
        for index, element in enumerate(data):
            try:
                validated.append(self._validate(validator, element, validate))
            except ValidationFailed as e:
                if not skip_errors:
                    raise
                skipped.append(SkippedItem(index, element, e.errors))
            except UnexpectedInputType as e:
                if not skip_errors:
                    raise
                skipped.append(SkippedItem(index, element, {"_data": [str(e)]}))

        if skipped:
            logger.warning(f"{type(self).__name__}: skipped {len(skipped)} invalid element(s) in batch create")

        created = self._on_create_many(validated, opts or {})
        return CreatedBatch(created, skipped)

    def create_without_validation(self, data: Mapping[str, Any], opts: Optional[Dict[str, Any]] = None) -> Any:
        with self.validation_disabled():
            return self.create(data, opts)

    def create_many_without_validation(
        self, data: Iterable[Mapping[str, Any]], opts: Optional[Dict[str, Any]] = None
    ) -> CreatedBatch:
        with self.validation_disabled():
            return self.create_many(data, opts)

    def _on_create(self, data: Dict[str, Any], opts: Dict[str, Any]) -> Any:
        """Add one instance to the session; committed by the caller"""
        instance = self.model(**data)
        self.db.add(instance)
        self.db.flush()
        return instance

    def _on_create_many(self, data: List[Dict[str, Any]], opts: Dict[str, Any]) -> List[Any]:
        if not data:
            return []

        try:
            instances = [self._on_create(element, opts) for element in data]
            self.db.commit()
        except Exception as e:
            logger.error(f"{type(self).__name__}: batch create of {len(data)} rolled back: {e}")
            self.db.rollback()
            raise

        for instance in instances:
            self.db.refresh(instance)
        logger.info(f"{type(self).__name__}: created {len(instances)} entities")
        return instances

    def validator_for_create(self) -> Validator:
        if self._create_validator is None:
            self._create_validator = Validator(
                self.validation_rules_for_create(), name=f"{type(self).__name__}CreateRules"
            )
        return self._create_validator

    # ========================================================================
    # Delete
    # ========================================================================

    def delete(self, element: Any, force: bool = False) -> bool:
        """
        Delete an entity or the entity with the given id

        Soft-deletable models are marked deleted unless `force` is set.

        Returns:
            True when something was deleted, False when the id matched nothing
            or the entity is already soft-deleted
        """
        if isinstance(element, self.model):
            if not force and is_soft_deletable(element) and element.is_deleted:
                logger.warning(f"{type(self).__name__}: {type(element).__name__} is already deleted")
                return False
        else:
            found = self.default_query().filter(*self._key_criteria(element)).first()
            if found is None:
                logger.warning(f"{type(self).__name__}: nothing to delete for id {element!r}")
                return False
            element = found

        return self._on_delete(element, force)

    def _on_delete(self, instance: Any, force: bool = False) -> bool:
        try:
            if is_soft_deletable(instance) and not force:
                mark_deleted(instance)
            else:
                self.db.delete(instance)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"{type(self).__name__}: deleted {type(instance).__name__}")
        return True

    # ========================================================================
    # Validation management
    # ========================================================================

    @property
    def validates(self) -> bool:
        return self._with_validation

    def with_validation(self, flag: bool = True) -> "BuilderService":
        self._with_validation = bool(flag)
        return self

    def without_validation(self) -> "BuilderService":
        return self.with_validation(False)

    @contextmanager
    def validation_disabled(self) -> Iterator["BuilderService"]:
        """Disable validation for the block, validation is back on when it exits"""
        self.without_validation()
        try:
            yield self
        finally:
            self.with_validation()

    def _validate(self, validator: Validator, data: Any, validate: Optional[bool]) -> Dict[str, Any]:
        if validate is None:
            validate = self._with_validation
        return validator(data, validate=validate)

    # ========================================================================
    # Service-level filters
    # ========================================================================

    def add_filter(self, key: str, value: Any) -> "BuilderService":
        """Filter applied to every query this service builds"""
        self._base_filters.append(Filter(key, value))
        return self

    def remove_filter(self, key: str) -> "BuilderService":
        self._base_filters = [f for f in self._base_filters if f.key != key]
        return self
