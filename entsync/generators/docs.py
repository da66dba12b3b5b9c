from typing import Any, Dict, List

from ..core.enums import FieldType, NodeKind
from ..core.models import EntityField, EntityRecord
from .base import ArtifactGenerator, GENERATED_HEADER


class MarkdownDocGenerator(ArtifactGenerator):
    """Markdown reference page for one entity. Secret fields are never listed."""

    kind = NodeKind.DOC.value
    default_options = {'include_internal': True}

    def output_path(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        return f"docs/{entity.name}.md"

    def render(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        fields = entity.documented_fields() if options.get('include_internal') else entity.public_fields()

        lines: List[str] = [
            f"<!-- {GENERATED_HEADER} -->",
            f"# {entity.name}",
            "",
        ]
        if entity.description:
            lines.extend([entity.description, ""])
        lines.extend([
            "## Fields",
            "",
            "| Name | Type | Required | Visibility | Description |",
            "| --- | --- | --- | --- | --- |",
        ])
        for field in fields:
            lines.append(
                f"| `{field.name}` | {self._type_label(field)} | {'no' if field.optional else 'yes'} "
                f"| {field.visibility.value} | {self._escape(field.description or '')} |"
            )

        hidden = len(entity.fields) - len(fields)
        if hidden:
            lines.extend(["", f"_{hidden} field(s) not shown._"])

        return "\n".join(lines)

    def _type_label(self, field: EntityField) -> str:
        label = field.type.value
        if field.type == FieldType.ARRAY and field.items:
            label = f"array of {field.items.value}"
        if field.max_length is not None:
            label = f"{label} (max {field.max_length})"
        if field.primary_key:
            label = f"{label}, primary key"
        elif field.unique:
            label = f"{label}, unique"
        return label

    def _escape(self, text: str) -> str:
        return text.replace("|", "\\|").replace("\n", " ")
