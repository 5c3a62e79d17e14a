"""Deployment-context checks for solution connectors.

Only run when the caller supplies a ValidationContext: full skill bodies,
the connector list and the uploaded connector sources. Wiring checks cover
skill-to-connector references and UI plugins. The source checks are
static text scans of the connector's JavaScript entry point; nothing is
executed or installed.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Set

from loguru import logger

from contracts import (
    Issue,
    ConnectorTransport,
    StoreFile,
    ValidationContext,
    error,
    warning,
)
from validators.document import as_dict, as_list, dicts


SERVER_FILES = ("server.js", "index.js", "server.ts")
UI_SERVER_FILE = "server.js"
UI_DIST_PREFIX = "ui-dist/"
UI_DOC_REF = "API docs: GET /spec/examples/connector-ui -> _ui_tool_response_formats"

DEPRECATED_CONNECTOR_PATH = "/opt/mcp-connectors/"
# The runtime resolves the tenant-scoped store path; args must be relative
ABSOLUTE_STORE_PREFIXES = ("/mcp-store/", "/tenants/")
STORE_PATH_PATTERN = re.compile(r"/mcp-store/([^/]+)/")

NODE_BUILTINS = frozenset([
    "fs", "path", "http", "https", "crypto", "url", "os", "util", "stream",
    "events", "child_process", "net", "tls", "dns", "querystring", "readline",
    "assert", "buffer", "zlib", "worker_threads", "cluster", "dgram",
    "perf_hooks", "async_hooks", "v8", "vm", "module", "timers", "console",
    "process", "string_decoder", "punycode",
])

# Bare (non-relative) module specifiers
REQUIRE_PATTERN = re.compile(r"""require\s*\(\s*['"]([^./][^'"]*)['"]\s*\)""")
IMPORT_PATTERN = re.compile(r"""from\s+['"]([^./][^'"]*)['"]""")

LIST_PLUGINS_BARE_ARRAY = re.compile(r"""['"]ui\.listPlugins['"][\s\S]{0,500}?JSON\.stringify\s*\(\s*\[""")


def package_base_name(module: str) -> str:
    """Installable package name for a module specifier.

    "lodash/fp" -> "lodash", "@scope/pkg/sub" -> "@scope/pkg", "node:fs" -> "fs".
    """
    if module.startswith("node:"):
        module = module[len("node:"):]
    if module.startswith("@"):
        return "/".join(module.split("/")[:2])
    return module.split("/")[0]


def external_modules(code: str) -> List[str]:
    """Distinct non-builtin modules required or imported by the code, in order of appearance."""
    found: List[str] = []
    for module in REQUIRE_PATTERN.findall(code) + IMPORT_PATTERN.findall(code):
        if module not in found:
            found.append(module)
    return [m for m in found if package_base_name(m) not in NODE_BUILTINS]


def _find_file(files: List[StoreFile], names) -> Optional[StoreFile]:
    for store_file in files:
        if store_file.path in names:
            return store_file
    return None


def _connector_label(connector: Dict[str, Any]) -> str:
    return str(connector.get("id"))


def _transport(connector: Dict[str, Any]) -> str:
    return connector.get("transport") or ConnectorTransport.STDIO.value


def _launch_args(connector: Dict[str, Any]) -> List[Any]:
    return as_list(as_dict(connector.get("config")).get("args") or connector.get("args"))


def _skill_label(skill: Dict[str, Any]) -> str:
    return str(skill.get("name") or skill.get("id"))


def check_bridge_tools(context: ValidationContext) -> List[Issue]:
    """Every mcp_bridge tool must point at a declared connector."""
    connector_ids = {c.get("id") for c in dicts(context.connectors) if isinstance(c.get("id"), str)}
    issues = []
    for si, skill in enumerate(dicts(context.skills)):
        for ti, tool in enumerate(dicts(skill.get("tools"))):
            source = as_dict(tool.get("source"))
            connection_id = source.get("connection_id")
            if source.get("type") != "mcp_bridge" or not connection_id:
                continue
            if connection_id not in connector_ids:
                issues.append(error(
                    "mcp_bridge_connector_exists",
                    f"skills[{si}].tools[{ti}].source.connection_id",
                    f'Tool "{tool.get("name")}" in skill "{_skill_label(skill)}" references '
                    f'connector "{connection_id}" which is not in the connectors array',
                    skill=skill.get("id"),
                    tool=tool.get("name"),
                    connector=connection_id,
                ))
    return issues


def check_connector_code(context: ValidationContext) -> List[Issue]:
    """Stdio connectors are launched from uploaded source, so the source must exist."""
    issues = []
    for ci, connector in enumerate(dicts(context.connectors)):
        connector_id = _connector_label(connector)
        if _transport(connector) != ConnectorTransport.STDIO.value or context.mcp_store.get(connector_id):
            continue
        issues.append(error(
            "connector_code_available",
            f"connectors[{ci}]",
            f'Connector "{connector_id}" has no server code. Provide the business logic (API calls, '
            f"DB queries, etc.) in mcp_store.{connector_id}; the deploy pipeline wraps it into a working "
            "MCP server. Without it the connector fails to start.",
            f'Add mcp_store: {{ "{connector_id}": [{{ path: "server.js", content: "..." }}] }} to the deploy '
            "payload. Write only the tool implementations; the MCP server scaffolding is generated.",
            connector=connector_id,
        ))
    return issues


def _check_dependencies(connector_id: str, path: str, files: List[StoreFile]) -> List[Issue]:
    server = _find_file(files, SERVER_FILES)
    modules = external_modules(server.content if server else "")
    if not modules:
        return []

    package_json = _find_file(files, ("package.json",))
    if package_json is None:
        listed = modules[:5]
        deps = ", ".join(f'"{package_base_name(m)}": "*"' for m in listed)
        return [error(
            "connector_missing_package_json",
            path,
            f'Connector "{connector_id}" server code requires npm packages ({", ".join(listed)}) but no '
            "package.json was included in mcp_store. Without it npm install cannot run and the connector "
            "crashes at startup with MODULE_NOT_FOUND.",
            f'Add a package.json to mcp_store.{connector_id}: {{ "name": "{connector_id}", "dependencies": {{ {deps} }} }}',
            connector=connector_id,
            modules=listed,
        )]

    try:
        manifest = json.loads(package_json.content)
    except ValueError:
        # Malformed package.json is left to the npm install step to report
        logger.debug("Ignoring malformed package.json for connector {connector}", connector=connector_id)
        return []

    manifest = as_dict(manifest)
    declared = {**as_dict(manifest.get("dependencies")), **as_dict(manifest.get("devDependencies"))}
    missing = []
    for module in modules:
        base = package_base_name(module)
        if not declared.get(base) and base not in missing:
            missing.append(base)
    if not missing:
        return []

    verb = "it's" if len(missing) == 1 else "they're"
    return [warning(
        "connector_missing_dependencies",
        path,
        f'Connector "{connector_id}" server code requires {", ".join(missing)} but {verb} not in '
        "package.json dependencies. The connector may crash at startup.",
        "Add to package.json dependencies: " + ", ".join(f'"{m}": "*"' for m in missing),
        connector=connector_id,
        modules=missing,
    )]


def _check_launch_args(connector_id: str, path: str, args: List[Any]) -> List[Issue]:
    issues = []
    for arg in args:
        if isinstance(arg, str) and DEPRECATED_CONNECTOR_PATH in arg:
            issues.append(error(
                "connector_deprecated_path",
                f"{path}.args",
                f'Connector "{connector_id}" uses deprecated path "{DEPRECATED_CONNECTOR_PATH}" in args. '
                "The path does not exist on the runtime; command and args can be omitted and the entry "
                "point is detected from mcp_store files.",
                'Remove command and args, or use the relative filename "server.js".',
                connector=connector_id,
            ))
    for arg in args:
        if not isinstance(arg, str) or arg.startswith(ABSOLUTE_STORE_PREFIXES):
            continue
        match = STORE_PATH_PATTERN.search(arg)
        if match and match.group(1) != connector_id:
            issues.append(warning(
                "connector_path_mismatch",
                f"{path}.args",
                f'Connector "{connector_id}" args reference "/mcp-store/{match.group(1)}/" but the connector '
                f'id is "{connector_id}". Files are stored at /mcp-store/{connector_id}/.',
                "Use the relative filename, or omit command/args.",
                connector=connector_id,
            ))
    return issues


def check_connector_paths(context: ValidationContext) -> List[Issue]:
    """Launch args must not hardcode absolute store or tenant paths."""
    issues = []
    for ci, connector in enumerate(dicts(context.connectors)):
        connector_id = _connector_label(connector)
        for arg in _launch_args(connector):
            if isinstance(arg, str) and arg.startswith(ABSOLUTE_STORE_PREFIXES):
                issues.append(error(
                    "connector_no_absolute_paths",
                    f"connectors[{ci}].args",
                    f'Connector "{connector_id}" has hardcoded absolute path "{arg}" in args. Use relative '
                    'filenames (e.g. "server.js"); the runtime resolves the tenant-scoped mcp-store path.',
                    f'Replace "{arg}" with just the filename: "{arg.split("/")[-1]}"',
                    connector=connector_id,
                ))
    return issues


def _declared_ids(context: ValidationContext, platform_ids: Iterable[str]) -> Set[str]:
    declared = {c.get("id") for c in dicts(context.connectors) if isinstance(c.get("id"), str)}
    return declared | set(platform_ids)


def check_skill_connectors(context: ValidationContext, platform_ids: Iterable[str] = ()) -> List[Issue]:
    """Connectors a skill lists must be declared by the solution."""
    declared = _declared_ids(context, platform_ids)
    issues = []
    for si, skill in enumerate(dicts(context.skills)):
        for ci, connector_id in enumerate(as_list(skill.get("connectors"))):
            if connector_id not in declared:
                issues.append(warning(
                    "skill_connector_declared",
                    f"skills[{si}].connectors[{ci}]",
                    f'Skill "{_skill_label(skill)}" references connector "{connector_id}" which is not '
                    "declared in the solution's connectors or platform_connectors",
                    skill=skill.get("id"),
                    connector=connector_id,
                ))
    return issues


def check_unused_connectors(context: ValidationContext) -> List[Issue]:
    """Connectors no skill references are deployed for nothing."""
    used = {c for skill in dicts(context.skills) for c in as_list(skill.get("connectors")) if isinstance(c, str)}
    issues = []
    for ci, connector in enumerate(dicts(context.connectors)):
        connector_id = _connector_label(connector)
        if connector_id not in used:
            issues.append(warning(
                "connector_unused",
                f"connectors[{ci}]",
                f'Connector "{connector_id}" is defined but not referenced by any skill. It will be '
                "deployed but unused; consider removing it.",
                connector=connector_id,
            ))
    return issues


def check_ui_plugins(context: ValidationContext, platform_ids: Iterable[str] = ()) -> List[Issue]:
    """Skills with ui_plugins: the ui_capable flag, plugin connectors and their UI tools."""
    declared = _declared_ids(context, platform_ids)
    connectors = {c.get("id"): c for c in dicts(context.connectors)}
    issues = []
    for si, skill in enumerate(dicts(context.skills)):
        plugins = dicts(skill.get("ui_plugins"))
        if not plugins:
            continue
        label = _skill_label(skill)

        if not skill.get("ui_capable"):
            issues.append(warning(
                "ui_capable_flag",
                f"skills[{si}].ui_capable",
                f'Skill "{label}" has {len(plugins)} ui_plugins but ui_capable is not set to true',
                skill=skill.get("id"),
            ))

        for pi, plugin in enumerate(plugins):
            connector_id = plugin.get("connector_id")
            if not connector_id:
                continue
            path = f"skills[{si}].ui_plugins[{pi}].connector_id"
            details = {"skill": skill.get("id"), "plugin": plugin.get("id"), "connector": connector_id}
            if connector_id not in declared:
                issues.append(error(
                    "ui_plugin_connector_exists",
                    path,
                    f'UI plugin "{plugin.get("id")}" in skill "{label}" references connector '
                    f'"{connector_id}" which is not declared',
                    **details,
                ))

            # Only connectors that publish tool metadata can be checked
            tool_names = {t.get("name") for t in dicts(as_dict(connectors.get(connector_id)).get("tools"))}
            if not tool_names:
                continue
            if "ui.getPlugin" not in tool_names:
                issues.append(warning(
                    "ui_connector_has_getplugin",
                    path,
                    f'Connector "{connector_id}" used by UI plugin "{plugin.get("id")}" is missing '
                    '"ui.getPlugin" tool; the dashboard cannot load',
                    **details,
                ))
            if "ui.listPlugins" not in tool_names:
                issues.append(warning(
                    "ui_connector_has_listplugins",
                    path,
                    f'Connector "{connector_id}" used by UI plugin "{plugin.get("id")}" is missing '
                    '"ui.listPlugins" tool; plugin discovery will fail',
                    **details,
                ))
    return issues


def check_connector_sources(context: ValidationContext) -> List[Issue]:
    """Static checks on uploaded connector sources and launch arguments."""
    issues = []
    for ci, connector in enumerate(dicts(context.connectors)):
        connector_id = _connector_label(connector)
        files = context.mcp_store.get(connector_id)
        if not files:
            continue
        path = f"connectors[{ci}]"
        issues.extend(_check_dependencies(connector_id, path, files))
        issues.extend(_check_launch_args(connector_id, path, _launch_args(connector)))
    return issues


def _returns_bare_plugin_list(code: str) -> bool:
    """Heuristic: ui.listPlugins serialises an array literal with no `plugins` wrapper nearby."""
    match = LIST_PLUGINS_BARE_ARRAY.search(code)
    if not match:
        return False
    window = code[max(0, match.start() - 50):match.end() + 200]
    return "plugins:" not in window and '"plugins"' not in window


def check_ui_connectors(context: ValidationContext) -> List[Issue]:
    """UI-capable connectors: stdio transport, the two plugin tools, response shape and assets."""
    issues = []
    for ci, connector in enumerate(dicts(context.connectors)):
        if not connector.get("ui_capable"):
            continue
        connector_id = _connector_label(connector)
        path = f"connectors[{ci}]"

        transport = _transport(connector)
        if transport != ConnectorTransport.STDIO.value:
            issues.append(error(
                "ui_connector_transport",
                f"{path}.transport",
                f'UI-capable connector "{connector_id}" must use transport: "stdio". Got "{transport}".',
                connector=connector_id,
                docs=UI_DOC_REF,
            ))

        files = context.mcp_store.get(connector_id) or []
        server = _find_file(files, (UI_SERVER_FILE,))
        if server is None or not server.content:
            continue
        code = server.content

        if "ui.listPlugins" not in code:
            issues.append(error(
                "ui_connector_listplugins_tool",
                path,
                f'UI-capable connector "{connector_id}" server.js does not implement the "ui.listPlugins" '
                "tool, which the runtime uses to discover UI plugins.",
                'Implement a "ui.listPlugins" tool that returns { plugins: [{ id, name, version, description }] }.',
                connector=connector_id,
                docs=UI_DOC_REF,
            ))
        if "ui.getPlugin" not in code:
            issues.append(error(
                "ui_connector_getplugin_tool",
                path,
                f'UI-capable connector "{connector_id}" server.js does not implement the "ui.getPlugin" '
                "tool, which the runtime uses to load plugin manifests.",
                'Implement a "ui.getPlugin" tool that returns { id, name, version, render: { mode: "iframe", '
                "iframeUrl }, channels, capabilities }.",
                connector=connector_id,
                docs=UI_DOC_REF,
            ))

        if _returns_bare_plugin_list(code):
            issues.append(warning(
                "ui_connector_listplugins_format",
                path,
                f'UI-capable connector "{connector_id}": ui.listPlugins appears to return a bare array '
                "instead of { plugins: [...] }.",
                "Change the response from JSON.stringify([...]) to JSON.stringify({ plugins: [...] }).",
                connector=connector_id,
                docs=UI_DOC_REF,
            ))

        if not any(f.path.startswith(UI_DIST_PREFIX) for f in files):
            issues.append(warning(
                "ui_connector_dist_files",
                path,
                f'UI-capable connector "{connector_id}" has no ui-dist/ files in mcp_store. Plugin assets '
                "belong in ui-dist/<plugin-id>/<version>/.",
                connector=connector_id,
                docs=UI_DOC_REF,
            ))
    return issues


def validate_connectors(context: ValidationContext, platform_ids: Iterable[str] = ()) -> List[Issue]:
    """Run every context-dependent connector check.

    Args:
        context: Full skill bodies, connector definitions and connector sources
        platform_ids: Platform connector ids the solution declares

    Returns:
        Connector issues in check order
    """
    issues: List[Issue] = []
    issues.extend(check_bridge_tools(context))
    issues.extend(check_connector_code(context))
    issues.extend(check_connector_paths(context))
    issues.extend(check_skill_connectors(context, platform_ids))
    issues.extend(check_unused_connectors(context))
    issues.extend(check_ui_plugins(context, platform_ids))
    issues.extend(check_connector_sources(context))
    issues.extend(check_ui_connectors(context))
    logger.debug(
        "Connector checks over {count} connector(s): {issues} issue(s)",
        count=len(context.connectors),
        issues=len(issues),
    )
    return issues
