"""Analysis tool registry."""

from pqcscan.core.interfaces import IAnalysisTool


class ToolRegistry:
    """Registry for analysis tool plugins."""

    _tools: dict[str, type[IAnalysisTool]] = {}

    @classmethod
    def register(cls, tool_class: type[IAnalysisTool]) -> type[IAnalysisTool]:
        """Register a tool class under its name."""
        instance = tool_class()
        cls._tools[instance.name] = tool_class
        return tool_class

    @classmethod
    def get(cls, name: str) -> type[IAnalysisTool] | None:
        return cls._tools.get(name)

    @classmethod
    def get_instance(cls, name: str) -> IAnalysisTool | None:
        """Get a tool instance by name."""
        tool_class = cls.get(name)
        if tool_class:
            return tool_class()
        return None

    @classmethod
    def list_all(cls) -> list[str]:
        return list(cls._tools.keys())
