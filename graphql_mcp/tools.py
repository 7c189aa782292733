"""LangChain tools wrapping generated GraphQL operations."""

import json
import asyncio
import logging
from typing import Optional, Type, Dict, Any, List, Literal, Union
from pydantic import BaseModel, Field, ConfigDict, create_model

from graphql import GraphQLField, GraphQLInputType

from langchain_core.tools import BaseTool
from langchain_core.callbacks import CallbackManagerForToolRun, AsyncCallbackManagerForToolRun

from .catalog import ToolDefinition
from .errors import GraphQLMCPError
from .graphql import TypeKind, classify
from .operations import sanitize_value

logger = logging.getLogger(__name__)

SCALAR_PYTHON_TYPES = {
    "Int": int,
    "Float": float,
    "Boolean": bool,
    "String": str,
    "ID": str,
}


def python_type(type_: GraphQLInputType) -> Any:
    """Python annotation accepted for a GraphQL input type (nullability handled by the caller)."""
    kind = classify(type_)
    if kind == TypeKind.NON_NULL:
        return python_type(type_.of_type)
    elif kind == TypeKind.LIST:
        return List[python_type(type_.of_type)]
    elif kind == TypeKind.SCALAR:
        return SCALAR_PYTHON_TYPES.get(type_.name, Any)
    elif kind == TypeKind.ENUM:
        return Literal[tuple(type_.values.keys())]
    elif kind == TypeKind.INPUT_OBJECT:
        # JSON text is accepted too and parsed by the coercer
        return Union[Dict[str, Any], str]
    return Any


def build_args_model(definition: ToolDefinition, field: GraphQLField) -> Type[BaseModel]:
    """
    Build the pydantic input model of a tool from its field arguments.

    Args:
        definition: Generated tool definition, source of descriptions and required names
        field: Root field the tool calls

    Returns:
        Type[BaseModel]: Model named after the tool
    """
    properties = definition.input_schema.properties
    required = set(definition.input_schema.required)

    fields = {}
    for arg_name, arg in field.args.items():
        if arg_name.startswith("_"):
            logger.warning(f"Argument '{arg_name}' of {definition.name} cannot be exposed as a model field")
            continue
        description = properties[arg_name].description
        annotation = python_type(arg.type)
        if arg_name in required:
            fields[arg_name] = (annotation, Field(description=description))
        else:
            fields[arg_name] = (Optional[annotation], Field(default=None, description=description))

    return create_model(f"{definition.name}_input", **fields)


class GraphQLOperationTool(BaseTool):
    """
    Tool that runs one generated GraphQL query or mutation.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: Type[BaseModel]

    def __init__(self, definition: ToolDefinition, field: GraphQLField, invoker):
        super().__init__(
            name=definition.name,
            description=definition.description,
            args_schema=build_args_model(definition, field),
        )
        self._invoker = invoker

    @property
    def invoker(self):
        return self._invoker

    def _run(
        self,
        run_manager: Optional[CallbackManagerForToolRun] = None,
        **kwargs: Any,
    ) -> str:
        """Execute the operation synchronously."""
        return asyncio.run(self._arun(**kwargs))

    async def _arun(
        self,
        run_manager: Optional[AsyncCallbackManagerForToolRun] = None,
        **kwargs: Any,
    ) -> str:
        """Execute the operation and return the result as JSON text."""
        try:
            result = await self.invoker.call(self.name, kwargs)
            return json.dumps(sanitize_value(result), indent=2, ensure_ascii=False)
        except GraphQLMCPError as e:
            return f"Error executing {self.name}: {str(e)}"
