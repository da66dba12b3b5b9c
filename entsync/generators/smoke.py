from typing import Any, Dict

from ..core.enums import NodeKind
from ..core.models import EntityRecord
from ..utils.naming import to_snake_case
from .base import ArtifactGenerator, GENERATED_HEADER


class SmokeTestGenerator(ArtifactGenerator):
    """
    pytest smoke test checking that the generated schema of an entity exists
    and declares the expected fields.
    """

    kind = NodeKind.TEST.value
    default_options = {'schema_dir': 'schemas'}

    def output_path(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        return f"tests/test_{to_snake_case(entity.name)}_smoke.py"

    def render(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        snake = to_snake_case(entity.name)
        field_names = sorted(field.name for field in entity.fields)
        required = sorted(field.name for field in entity.fields if not field.optional)

        return "\n".join([
            f"# {GENERATED_HEADER}",
            "import json",
            "from pathlib import Path",
            "",
            "SCHEMA_PATH = (",
            f"    Path(__file__).resolve().parent.parent / {options.get('schema_dir')!r} / {entity.name + '.schema.json'!r}",
            ")",
            "",
            "",
            f"def test_{snake}_schema_exists():",
            "    assert SCHEMA_PATH.is_file()",
            "",
            "",
            f"def test_{snake}_schema_declares_fields():",
            "    schema = json.loads(SCHEMA_PATH.read_text(encoding='utf-8'))",
            f"    assert schema['title'] == {entity.name!r}",
            f"    assert sorted(schema['properties']) == {field_names!r}",
            f"    assert sorted(schema.get('required', [])) == {required!r}",
        ])
