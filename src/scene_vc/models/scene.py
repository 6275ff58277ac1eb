"""Scene document model: a tagged union over the object kinds the editor draws."""

from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    Tag,
)

# Strict members so values keep their JSON type; numbers written as text stay text.
Number = Union[StrictInt, StrictFloat, StrictStr]
Identity = Union[StrictStr, StrictInt]
Paint = Union[str, Dict[str, Any]]

TEXT_TYPES = ("text", "i-text", "textbox")

_KIND_BY_TYPE = {
    "rect": "rect",
    "circle": "ellipse",
    "ellipse": "ellipse",
    "image": "image",
    **{t: "text" for t in TEXT_TYPES},
}


class SceneObjectBase(BaseModel):
    """Properties shared by every scene object.

    Unknown properties are kept as extras so a snapshot survives a
    round trip through the model unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[Identity] = None
    uuid: Optional[Identity] = None
    type: str
    left: Optional[Number] = None
    top: Optional[Number] = None
    width: Optional[Number] = None
    height: Optional[Number] = None
    fill: Optional[Paint] = None
    stroke: Optional[Paint] = None
    stroke_width: Optional[Number] = Field(default=None, alias="strokeWidth")
    angle: Optional[Number] = None
    scale_x: Optional[Number] = Field(default=None, alias="scaleX")
    scale_y: Optional[Number] = Field(default=None, alias="scaleY")
    opacity: Optional[Number] = None

    @property
    def object_id(self) -> Optional[str]:
        """Persisted identity of the object, if it has one.

        Numeric ids are compared by their text form.
        """
        raw = self.id or self.uuid
        return None if raw is None or raw == "" else str(raw)

    def position_value(self) -> Dict[str, Any]:
        return {"left": self.left, "top": self.top}

    def style_value(self) -> Dict[str, Any]:
        return {"fill": self.fill, "stroke": self.stroke}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class RectObject(SceneObjectBase):
    rx: Optional[Number] = None
    ry: Optional[Number] = None


class EllipseObject(SceneObjectBase):
    """Circles and ellipses."""

    radius: Optional[Number] = None
    rx: Optional[Number] = None
    ry: Optional[Number] = None


class TextObject(SceneObjectBase):
    text: str = ""
    font_size: Optional[Number] = Field(default=None, alias="fontSize")
    font_family: Optional[str] = Field(default=None, alias="fontFamily")


class ImageObject(SceneObjectBase):
    src: Optional[str] = None


class GenericObject(SceneObjectBase):
    """Any object kind without dedicated fields (paths, groups, lines...)."""


def object_kind(value: Any) -> str:
    """Map a raw or parsed object to its union tag."""
    if isinstance(value, dict):
        obj_type = value.get("type")
    else:
        obj_type = getattr(value, "type", None)
    return _KIND_BY_TYPE.get(obj_type, "generic")


SceneObject = Annotated[
    Union[
        Annotated[RectObject, Tag("rect")],
        Annotated[EllipseObject, Tag("ellipse")],
        Annotated[TextObject, Tag("text")],
        Annotated[ImageObject, Tag("image")],
        Annotated[GenericObject, Tag("generic")],
    ],
    Discriminator(object_kind),
]


class SceneDocument(BaseModel):
    """Full serialized state of a scene. Z-order is the order of ``objects``."""

    model_config = ConfigDict(extra="allow")

    version: Optional[str] = None
    background: Optional[Paint] = None
    objects: List[SceneObject] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SceneDocument":
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        data.setdefault("objects", [])
        return data

    def index(self) -> Dict[str, SceneObjectBase]:
        """Map object identity to object, skipping objects with no identity.

        A repeated identity keeps its first position and its last value.
        """
        indexed: Dict[str, SceneObjectBase] = {}
        for obj in self.objects:
            if obj.object_id:
                indexed[obj.object_id] = obj
        return indexed

    def __len__(self) -> int:
        return len(self.objects)
