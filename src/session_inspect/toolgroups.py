"""Tool categories used by the agent runtime."""

from typing import Iterable

from .models import ToolGroup


TOOL_GROUPS: dict[str, list[str]] = {
    'runtime': ['exec', 'bash', 'process'],
    'fs': ['read', 'write', 'edit', 'apply_patch'],
    'sessions': ['sessions_list', 'sessions_history', 'sessions_send', 'sessions_spawn', 'session_status'],
    'memory': ['memory_search', 'memory_get'],
    'ui': ['browser', 'canvas'],
    'automation': ['cron', 'gateway'],
    'messaging': ['message'],
    'nodes': ['nodes'],
    'web': ['web_search', 'web_fetch'],
    'media': ['image', 'tts'],
    'agents': ['agents_list'],
}

GROUP_DISPLAY_NAMES = {
    'runtime': 'Runtime',
    'fs': 'File System',
    'sessions': 'Sessions',
    'memory': 'Memory',
    'ui': 'UI',
    'automation': 'Automation',
    'messaging': 'Messaging',
    'nodes': 'Nodes',
    'web': 'Web',
    'media': 'Media',
    'agents': 'Agents',
    'other': 'Other',
}

_GROUP_BY_TOOL = {tool: group for group, tools in TOOL_GROUPS.items() for tool in tools}


def group_for_tool(tool_name: str) -> str:
    return _GROUP_BY_TOOL.get(tool_name, 'other')


def group_tools(tool_names: Iterable[str]) -> list[ToolGroup]:
    """
    Group tool names by category.

    Groups are sorted by name with "other" last; tools inside a group are
    sorted and de-duplicated.
    """
    grouped: dict[str, set[str]] = {}
    for name in tool_names:
        grouped.setdefault(group_for_tool(name), set()).add(name)

    result = [
        ToolGroup(
            name=group,
            display_name=GROUP_DISPLAY_NAMES.get(group, group),
            tools=sorted(tools),
            count=len(tools),
        )
        for group, tools in grouped.items()
    ]
    result.sort(key=lambda g: (g.name == 'other', g.name))
    return result
