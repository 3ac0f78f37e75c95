from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.common import Session, Term

# ==========================================================
# [component parts]
# ==========================================================
class ScoreColumn(BaseModel):
    key: Optional[str] = None                     # stable identifier, generated when missing
    name: str = Field(..., min_length=1)          # header label (CA1, Exam, Total ...)
    maxScore: float = Field(0, ge=0)
    enabled: bool = True
    editable: bool = True
    calculated: bool = False                      # Total / Grade style columns


class Trait(BaseModel):
    key: Optional[str] = None
    name: str = Field(..., min_length=1)
    enabled: bool = True


class FeeType(BaseModel):
    key: Optional[str] = None
    name: str = Field(..., min_length=1)
    enabled: bool = True


class Section(BaseModel):
    enabled: bool = True


class ScoresTableSection(Section):
    columns: Optional[List[ScoreColumn]] = None
    defaultSubjects: int = Field(12, ge=0)


class AffectiveTraitsSection(Section):
    traits: Optional[List[Trait]] = None


class FeesSection(Section):
    types: Optional[List[FeeType]] = None


class CommentsSection(Section):
    teacher: bool = True
    principal: bool = True


class TemplateComponents(BaseModel):
    header: Section = Field(default_factory=Section)
    studentInfo: Section = Field(default_factory=Section)
    scoresTable: ScoresTableSection = Field(default_factory=ScoresTableSection)
    affectiveTraits: AffectiveTraitsSection = Field(default_factory=AffectiveTraitsSection)
    fees: FeesSection = Field(default_factory=FeesSection)
    attendance: Section = Field(default_factory=Section)
    comments: CommentsSection = Field(default_factory=CommentsSection)
    signatures: Section = Field(default_factory=lambda: Section(enabled=False))

    model_config = ConfigDict(extra="forbid")


# ==========================================================
# [input schemas]
# ==========================================================
class TemplateCreate(BaseModel):
    name: Optional[str] = None
    term: Term
    session: Session
    components: TemplateComponents = Field(default_factory=TemplateComponents)


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    # partial sections, e.g. {"fees": {"enabled": false}}
    components: Optional[Dict[str, Dict[str, Any]]] = None


class TemplateDuplicate(BaseModel):
    term: Term
    session: Session
    name: Optional[str] = None


# ==========================================================
# [output schema]
# ==========================================================
class Template(BaseModel):
    id: int
    school_id: int
    name: str
    term: str
    session: str
    components: Dict[str, Any]
    is_active: bool
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
