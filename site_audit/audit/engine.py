"""
Audit engine: runs one policy's check logic against a target and classifies
whatever happens into a single outcome.
"""

import logging
import traceback
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, Optional, Union

from simpleeval import DEFAULT_FUNCTIONS, EvalWithCompoundTypes

from ..core.config import EngineConfig
from ..core.exceptions import (
    AuditValidationError,
    DependencyError,
    NoSuchPropertyError,
    ParameterError,
    RemoteDecodeError,
)
from ..core.logging_config import dump_tokens, get_logger
from ..core.policy import Outcome, Policy
from ..core.tokens import TokenBag
from ..targets.base import Target
from .parameters import ParameterDefinition, ParameterMode, ParameterSet
from .response import AuditResponse
from .sandbox import Sandbox

EXPRESSION_FUNCTIONS = dict(
    DEFAULT_FUNCTIONS,
    len=len,
    bool=bool,
    min=min,
    max=max,
    abs=abs,
    round=round,
    sorted=sorted,
)


class Audit(ABC):
    """
    Base class for check logic.

    Subclasses declare their inputs in :meth:`configure` and implement
    :meth:`audit`, returning an :class:`Outcome` or a bool. Values computed
    along the way are published with :meth:`set` so policies can use them
    in messages and expressions.
    """

    def __init__(
        self,
        target: Target,
        config: Optional[EngineConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.target = target
        self.config = config or EngineConfig()
        self.logger = logger or get_logger(type(self).__module__)
        self.definition = ParameterSet()
        self.tokens = _fresh_tokens()
        self.configure()

    def configure(self) -> None:
        """Declare parameters with :meth:`add_parameter`."""

    @abstractmethod
    def audit(self, sandbox: Sandbox) -> Union[Outcome, bool]:
        pass

    def execute(self, policy: Policy, remediate: bool = False) -> AuditResponse:
        """
        Run the policy and return its response. Never raises.

        Dependencies are evaluated first; if any is unmet the check logic
        is skipped and the first unmet dependency's ``on_fail`` outcome is
        used. Every error raised while binding parameters, auditing or
        remediating is turned into an outcome plus ``exception`` and
        ``exception_type`` tokens.
        """
        self.logger.info("Auditing %s", policy.name)
        # Each run starts from an empty store.
        self.tokens = _fresh_tokens()
        outcome = Outcome.ERROR
        tokens: Dict[str, Any] = {}
        try:
            self._check_dependencies(policy)

            bound = self.definition.bind(policy.get_all_parameters())
            self.tokens.get("parameters").add(bound)
            self.tokens.add(bound)

            outcome = Outcome.coerce(self.audit(Sandbox(self)))

            if outcome is Outcome.FAILURE and remediate and isinstance(self, RemediableAudit):
                self.logger.info("Remediating %s", policy.name)
                outcome = Outcome.coerce(self.remediate(Sandbox(self)))
        except DependencyError as e:
            outcome = e.dependency.get_fail_behaviour()
            self._record_exception(e)
        except (AuditValidationError, NoSuchPropertyError) as e:
            outcome = Outcome.NOT_APPLICABLE
            self._record_exception(e)
            self.logger.warning(str(e))
        except ParameterError as e:
            outcome = Outcome.ERROR
            self.set("exception_type", type(e).__name__)
            self.logger.warning(str(e))
            hint = self.definition.upgrade_hint(
                e, policy.get_all_parameters(), type(self).__name__
            )
            self.set("exception", hint)
        except RemoteDecodeError as e:
            outcome = Outcome.ERROR
            self._record_exception(e)
            self.logger.error(str(e))
        except Exception as e:
            outcome = Outcome.ERROR
            message = str(e) or type(e).__name__
            if self.config.include_traces:
                message += "\n" + traceback.format_exc()
            self.set("exception", message)
            self.set("exception_type", type(e).__name__)
            self.logger.error(message)
        finally:
            tokens = self.tokens.export()
            dump_tokens(tokens, self.logger)

        return AuditResponse(policy=policy, outcome=outcome, tokens=tokens)

    def _check_dependencies(self, policy: Policy) -> None:
        # All dependencies run so each failure is logged; the first decides.
        failures = []
        for dependency in policy.get_depends():
            try:
                dependency.execute(self)
            except DependencyError as e:
                self.logger.info("%s: %s", policy.name, e)
                failures.append(e)

        if failures:
            self.set("dependency_failures", [str(e) for e in failures])
            raise failures[0]

    def _record_exception(self, e: Exception) -> None:
        self.set("exception", str(e))
        self.set("exception_type", type(e).__name__)

    def evaluate(self, expression: str) -> Any:
        """Evaluate an expression against tokens and target properties."""
        evaluator = EvalWithCompoundTypes(
            names=self.get_contexts(), functions=EXPRESSION_FUNCTIONS
        )
        return evaluator.eval(expression)

    def interpolate(self, string: str, contexts: Optional[Dict[str, Any]] = None) -> str:
        """
        Replace ``{name}`` and ``{nested.name}`` tokens in a string.

        Values from the audit (tokens, target properties) take precedence
        over ``contexts``. Replacement is a single ordered pass, so a value
        that itself contains a token may be expanded again by a later key.
        """
        merged = dict(contexts or {})
        merged.update(self.get_contexts())
        return _interpolate(string, merged)

    def get_contexts(self) -> Dict[str, Any]:
        contexts = self.tokens.export()
        contexts["target"] = self.target
        for key in self.target.get_property_list():
            contexts[key] = self.target.get_property(key)
        return contexts

    def set_parameter(self, name: str, value: Any) -> "Audit":
        """Set a parameter. Typically provided by a policy."""
        self.tokens.get("parameters").set(name, value)
        return self

    def get_parameter(self, name: str, default: Any = None) -> Any:
        value = self.tokens.get("parameters").get(name)
        return default if value is None else value

    def set(self, name: str, value: Any) -> "Audit":
        """
        Set a non-parameter value such as a token.

        This is how an audit communicates what it computed, so policies can
        contextualise their messaging.
        """
        self.tokens.set(name, value)
        return self

    def get(self, name: str, default: Any = None) -> Any:
        return self.tokens.get(name, default)

    def add_parameter(
        self,
        name: str,
        mode: Optional[ParameterMode] = None,
        description: str = "",
        default: Any = None,
    ) -> "Audit":
        """Declare an input the policy may (or must) supply."""
        self.definition.add(
            ParameterDefinition(
                name=name,
                mode=mode or ParameterMode.OPTIONAL,
                description=description,
                default=default,
            )
        )
        return self


class RemediableAudit(Audit):
    """An audit that can attempt to fix what it found."""

    @abstractmethod
    def remediate(self, sandbox: Sandbox) -> Union[Outcome, bool]:
        pass


def _fresh_tokens() -> TokenBag:
    return TokenBag({"parameters": TokenBag()})


def _nested_items(value: Any):
    if isinstance(value, TokenBag):
        return value.all().items()
    if isinstance(value, Mapping):
        return value.items()
    if isinstance(value, (list, tuple)):
        return enumerate(value)
    return None


def _interpolate(string: str, values: Any, key_prefix: str = "") -> str:
    for key, value in _nested_items(values):
        name = f"{key_prefix}{key}"
        if _nested_items(value) is not None:
            string = _interpolate(string, value, f"{name}.")

        token = "{" + name + "}"
        if token not in string:
            continue
        string = string.replace(token, "" if value is None else str(value))
    return string
