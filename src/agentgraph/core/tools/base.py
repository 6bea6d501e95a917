"""Tool adapters.

A tool is something an LLM can ask to run: it has a name, a description,
a JSON schema for its parameters and an async ``execute``. Parameters are
pydantic models, so the schema comes from ``model_json_schema()``.

Tools are usually generated from a plain class with the ``tools``
decorator. Every named method becomes its own ``ToolFunction`` subclass
that shares the receiver:

Example:
    ```python
    class AddParams(BaseModel):
        a: int
        b: int

    @tools(add="Adds two numbers")
    class MathTool:
        async def add(self, params: AddParams) -> int:
            return params.a + params.b

    add_tool, = tool_functions(MathTool())
    await add_tool.call('{"a": 1, "b": 2}')   # -> "3"
    ```
"""

import inspect
import json
import typing
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Iterable, List, Type, Union

from pydantic import BaseModel, ValidationError

from agentgraph.core.errors import (
    ToolError,
    ToolExecutionError,
    ToolSchemaError,
    ToolSerializationError,
)
from agentgraph.core.logging import get_logger, LogComponent

logger = get_logger(LogComponent.TOOLS)


class ToolFunction(ABC):
    """Base class for a single callable tool.

    Subclasses set ``name``, ``description`` and ``params_model`` and
    implement ``execute``.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    params_model: ClassVar[Type[BaseModel]]

    @classmethod
    def parameters_schema(cls) -> Dict[str, Any]:
        """JSON schema of the parameters model."""
        return cls.params_model.model_json_schema()

    @classmethod
    def get_schema(cls) -> Dict[str, Any]:
        """OpenAI-style function tool definition."""
        return {
            "type": "function",
            "function": {
                "name": cls.name,
                "description": cls.description,
                "parameters": cls.parameters_schema(),
                "strict": True,
            },
        }

    @abstractmethod
    async def execute(self, params: BaseModel) -> Any:
        """Run the tool with validated parameters."""

    def parse_arguments(self, arguments: Union[str, Dict[str, Any], BaseModel]) -> BaseModel:
        """Validate raw arguments (JSON text, dict or model) into ``params_model``.

        Raises:
            ToolSchemaError: If the arguments do not match the schema
        """
        if isinstance(arguments, self.params_model):
            return arguments
        try:
            if isinstance(arguments, (str, bytes)):
                return self.params_model.model_validate_json(arguments)
            if isinstance(arguments, BaseModel):
                arguments = arguments.model_dump()
            return self.params_model.model_validate(arguments)
        except ValidationError as e:
            raise ToolSchemaError(f"Invalid arguments for {self.name}: {e}") from e

    @staticmethod
    def serialize(result: Any) -> str:
        """Render a tool result as JSON text.

        Raises:
            ToolSerializationError: If the result cannot be encoded
        """
        try:
            if isinstance(result, BaseModel):
                return result.model_dump_json()
            return json.dumps(result)
        except (TypeError, ValueError) as e:
            raise ToolSerializationError(str(e)) from e

    async def call(self, arguments: Union[str, Dict[str, Any], BaseModel]) -> str:
        """Validate arguments, execute and serialize the result.

        Raises:
            ToolSchemaError: Invalid arguments
            ToolExecutionError: ``execute`` failed with a non-tool error
            ToolSerializationError: The result could not be encoded
        """
        params = self.parse_arguments(arguments)
        logger.info(f"[Calling Tool '{self.name}' with args {params.model_dump()}]")
        try:
            result = await self.execute(params)
        except ToolError:
            raise
        except Exception as e:
            raise ToolExecutionError(f"{self.name}: {e}") from e
        output = self.serialize(result)
        logger.debug(f"Tool result: {output}")
        return output


class BoundToolFunction(ToolFunction):
    """A tool generated from a method; holds the shared receiver."""

    method_name: ClassVar[str]

    def __init__(self, receiver: Any):
        self.receiver = receiver

    async def execute(self, params: BaseModel) -> Any:
        return await getattr(self.receiver, self.method_name)(params)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.receiver!r})"


def _params_model(owner: type, method_name: str, method: Any) -> Type[BaseModel]:
    parameters = list(inspect.signature(method).parameters.values())
    if len(parameters) != 2:
        raise ToolSchemaError(
            f"{owner.__name__}.{method_name} must take exactly (self, params)"
        )
    try:
        hints = typing.get_type_hints(method)
    except Exception as e:
        raise ToolSchemaError(f"{owner.__name__}.{method_name}: cannot resolve annotations: {e}") from e

    params_type = hints.get(parameters[1].name)
    if not (isinstance(params_type, type) and issubclass(params_type, BaseModel)):
        raise ToolSchemaError(
            f"{owner.__name__}.{method_name}: parameters must be a pydantic model, "
            f"got {params_type!r}"
        )
    return params_type


def tools(**descriptions: str):
    """Class decorator generating one ``ToolFunction`` per named method.

    Args:
        **descriptions: ``method_name="description"`` pairs. Methods not
            named here are left alone.

    The generated classes are stored on ``cls.tool_adapters`` keyed by
    method name and named ``<ClassName><MethodName>``.

    Raises:
        ToolSchemaError: A named method is missing, not async, or its
            parameter is not a pydantic model
    """
    def decorator(cls: type) -> type:
        adapters: Dict[str, Type[BoundToolFunction]] = dict(getattr(cls, "tool_adapters", {}))
        for method_name, description in descriptions.items():
            method = getattr(cls, method_name, None)
            if method is None:
                raise ToolSchemaError(f"Method `{method_name}` not found on {cls.__name__}")
            if not inspect.iscoroutinefunction(method):
                raise ToolSchemaError(f"{cls.__name__}.{method_name} must be an async method")

            adapter = type(
                f"{cls.__name__}{method_name[:1].upper()}{method_name[1:]}",
                (BoundToolFunction,),
                {
                    "__module__": cls.__module__,
                    "__doc__": description,
                    "name": method_name,
                    "description": description,
                    "params_model": _params_model(cls, method_name, method),
                    "method_name": method_name,
                },
            )
            adapters[method_name] = adapter
        cls.tool_adapters = adapters
        return cls

    return decorator


def tool_functions(instance: Any) -> List[ToolFunction]:
    """Instantiate every generated tool for ``instance``."""
    adapters = getattr(type(instance), "tool_adapters", None)
    if adapters is None:
        raise ToolSchemaError(f"{type(instance).__name__} is not decorated with @tools")
    return [adapter(instance) for adapter in adapters.values()]


async def call_tool(available: Iterable[ToolFunction], name: str, arguments: Any) -> str:
    """Dispatch a tool call by name.

    Raises:
        ToolSchemaError: If no tool has that name
    """
    for tool in available:
        if tool.name == name:
            return await tool.call(arguments)
    raise ToolSchemaError(f"Unknown tool: {name}")
