"""
Package boundary contract.

1. crm_kernel/** may NOT import crm_services or crm_config.  The kernel
   never depends upward.

2. crm_kernel/domain/** is pure: no SQLAlchemy, no models, no services.

3. ORM models are only touched by the kernel and by the workflow services
   that own them; crm_config never imports them.

These tests read source code via AST -- they cannot break anything.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(path.read_text(), filename=str(path))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:

    def test_kernel_does_not_import_outer_packages(self):
        violations = _violations("crm_kernel", ("crm_services", "crm_config"))
        assert not violations, (
            "Kernel boundary violation -- crm_kernel/** must not import "
            "crm_services or crm_config:\n" + "\n".join(violations)
        )


class TestDomainPurity:

    def test_domain_has_no_persistence_imports(self):
        violations = _violations("crm_kernel/domain", (
            "sqlalchemy",
            "crm_kernel.db",
            "crm_kernel.models",
            "crm_kernel.services",
            "crm_kernel.selectors",
        ))
        assert not violations, (
            "crm_kernel/domain/** must stay free of I/O:\n" + "\n".join(violations)
        )


class TestConfigIsolation:

    def test_config_does_not_import_kernel_or_services(self):
        violations = _violations("crm_config", ("crm_kernel", "crm_services"))
        assert not violations, (
            "crm_config/** must not depend on the kernel or services:\n"
            + "\n".join(violations)
        )
