"""
Template Store — named QuoteDisplayConfigs per organization.

create / update / get / list / default / set_default. No delete: removal
policy belongs to the caller.

Names are unique per organization after trimming and case folding.
update() never changes a template id; concurrent edits are last-write-wins.
Configs are validated through the display-config builder before they are
stored, so every stored template can be assembled.
"""

import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from . import models
from .engine.display_config import QuoteDisplayConfig
from .errors import DuplicateNameError, TemplateNotFoundError, ValidationError
from .schemas import QuoteTemplate

logger = logging.getLogger(__name__)

ConfigInput = Union[QuoteDisplayConfig, dict, None]


def name_key(name: str) -> str:
    return name.strip().casefold()


class TemplateStore:

    def __init__(self, db: Session, org_id: str):
        self.db = db
        self.org_id = org_id

    # --- Queries ---

    def list(self) -> List[QuoteTemplate]:
        rows = self._query().order_by(models.QuoteTemplateRecord.created_at,
                                      models.QuoteTemplateRecord.id).all()
        return [self._to_schema(r) for r in rows]

    def get(self, template_id: str) -> QuoteTemplate:
        return self._to_schema(self._get_row(template_id))

    def default(self) -> Optional[QuoteTemplate]:
        """Template flagged as default, else the oldest one, else None."""
        row = self._query().filter(models.QuoteTemplateRecord.is_default.is_(True)).first()
        if row is None:
            row = self._query().order_by(models.QuoteTemplateRecord.created_at,
                                         models.QuoteTemplateRecord.id).first()
        return self._to_schema(row) if row else None

    # --- Commands ---

    def create(self, name: str, config: ConfigInput = None,
               description: Optional[str] = None, is_default: bool = False) -> QuoteTemplate:
        clean = self._check_name(name)
        validated = self._validate_config(config)
        if is_default:
            self._clear_default()

        row = models.QuoteTemplateRecord(
            id=str(uuid.uuid4()),
            org_id=self.org_id,
            name=clean,
            name_key=name_key(clean),
            description=description,
            is_default=is_default,
            config_json=validated.to_flat(),
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info("Created quote template %s (%r) for org %s", row.id, clean, self.org_id)
        return self._to_schema(row)

    def update(self, template_id: str, name: str, config: ConfigInput = None,
               description: Optional[str] = None) -> QuoteTemplate:
        row = self._get_row(template_id)
        clean = self._check_name(name, exclude_id=template_id)
        validated = self._validate_config(config) if config is not None \
            else QuoteDisplayConfig.from_flat(row.config_json)

        row.name = clean
        row.name_key = name_key(clean)
        row.config_json = validated.to_flat()
        if description is not None:
            row.description = description
        self.db.commit()
        self.db.refresh(row)
        logger.info("Updated quote template %s (%r) for org %s", row.id, clean, self.org_id)
        return self._to_schema(row)

    def set_default(self, template_id: str) -> QuoteTemplate:
        row = self._get_row(template_id)
        self._clear_default()
        row.is_default = True
        self.db.commit()
        self.db.refresh(row)
        return self._to_schema(row)

    # --- Helpers ---

    def _query(self):
        return self.db.query(models.QuoteTemplateRecord).filter(
            models.QuoteTemplateRecord.org_id == self.org_id
        )

    def _get_row(self, template_id: str) -> models.QuoteTemplateRecord:
        row = self._query().filter(models.QuoteTemplateRecord.id == template_id).first()
        if row is None:
            raise TemplateNotFoundError(template_id)
        return row

    def _check_name(self, name: str, exclude_id: Optional[str] = None) -> str:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Template name is required")
        query = self._query().filter(models.QuoteTemplateRecord.name_key == name_key(clean))
        if exclude_id is not None:
            query = query.filter(models.QuoteTemplateRecord.id != exclude_id)
        if query.first() is not None:
            raise DuplicateNameError(clean, self.org_id)
        return clean

    def _validate_config(self, config: ConfigInput) -> QuoteDisplayConfig:
        if config is None:
            return QuoteDisplayConfig()
        if isinstance(config, QuoteDisplayConfig):
            return config
        return QuoteDisplayConfig.from_flat(config)

    def _clear_default(self):
        self._query().filter(models.QuoteTemplateRecord.is_default.is_(True)).update(
            {models.QuoteTemplateRecord.is_default: False}, synchronize_session="fetch"
        )

    def _to_schema(self, row: models.QuoteTemplateRecord) -> QuoteTemplate:
        return QuoteTemplate(
            id=row.id,
            org_id=row.org_id,
            name=row.name,
            description=row.description,
            is_default=bool(row.is_default),
            config=QuoteDisplayConfig.from_flat(row.config_json),
        )
