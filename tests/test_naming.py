import ast
import re
from pathlib import Path
from typing import List

import pytest

SERVICES_DIR = Path(__file__).resolve().parent.parent / "app" / "services"

COMMON_VERBS = {
    'get', 'set', 'create', 'update', 'delete', 'validate',
    'check', 'process', 'handle', 'generate', 'send', 'receive'
}

CLASS_PATTERN = re.compile(r'^\s*class\s+([A-Za-z0-9]+)(\(|:)')
FUNCTION_PATTERN = re.compile(r'def\s+([a-z0-9_]+)\(')
VARIABLE_PATTERN = re.compile(r'\b([A-Za-z0-9_]+)\s*=\s*[^#]*')


def check_class_naming_convention(code: str, file_path: str) -> List[str]:
    """
    Clases en CamelCase y en singular.

    Returns:
        List[str]: errores encontrados
    """
    errors = []
    for line_no, line in enumerate(code.split('\n'), 1):
        match = CLASS_PATTERN.match(line)
        if not match:
            continue
        class_name = match.group(1)

        if not re.fullmatch(r'([A-Z][a-z0-9]*)+', class_name):
            errors.append(f"{file_path}:{line_no} - class '{class_name}' is not CamelCase")

        # chequeo básico de plural
        if class_name.endswith('s') and len(class_name) > 3:
            errors.append(f"{file_path}:{line_no} - class '{class_name}' looks plural")

    return errors


def check_snake_case_naming(code: str, file_path: str) -> List[str]:
    """snake_case para variables y funciones; las constantes en mayúsculas se ignoran."""
    errors = []
    for line_no, line in enumerate(code.split('\n'), 1):
        clean_line = re.sub(r'#.*', '', line)

        for match in FUNCTION_PATTERN.finditer(clean_line):
            name = match.group(1)
            if name != name.lower() or '__' in name:
                errors.append(f"{file_path}:{line_no} - function '{name}' is not valid snake_case")

        for match in VARIABLE_PATTERN.finditer(clean_line):
            name = match.group(1)
            if name.isupper():
                continue
            if not re.fullmatch(r'[a-z][a-z0-9_]*', name):
                errors.append(f"{file_path}:{line_no} - variable '{name}' is not valid snake_case")

    return errors


def check_function_verbs(code: str, file_path: str) -> List[str]:
    """Las funciones públicas síncronas empiezan con un verbo conocido."""
    errors = []
    for node in ast.walk(ast.parse(code)):
        if not isinstance(node, ast.FunctionDef) or node.name.startswith('_'):
            continue
        if node.name.split('_')[0] not in COMMON_VERBS:
            errors.append(
                f"{file_path}:{node.lineno} - function '{node.name}' does not start with a common verb "
                f"({', '.join(sorted(COMMON_VERBS))})"
            )
    return errors


def _service_files():
    return sorted(path for path in SERVICES_DIR.rglob("*.py") if path.name != "__init__.py")


def test_services_directory_has_modules():
    assert _service_files()


@pytest.mark.parametrize("path", _service_files(), ids=lambda path: path.relative_to(SERVICES_DIR).as_posix())
def test_naming_conventions_on_services(path):
    code = path.read_text(encoding="utf-8")
    file_path = path.relative_to(SERVICES_DIR.parent.parent).as_posix()

    errors = []
    errors += check_class_naming_convention(code, file_path)
    errors += check_snake_case_naming(code, file_path)
    errors += check_function_verbs(code, file_path)

    assert not errors, "\n".join(errors)
