"""Checks that data declared to flow between analyzers actually did."""

from __future__ import annotations

from typing import List, Tuple

from ..models import CommandInfo, DataFlowValidation, TestingInfo, ValidationIssue
from .base import ERROR, INFO, WARNING, ValidationContext, issue

# A consumer this much more confident than a weak producer is suspicious.
INVERSION_MARGIN = 0.3
PARTIAL_PROPAGATION_RATIO = 0.5


class DataFlowValidator:
    """Validate every declared producer -> consumer edge of a pipeline run."""

    name = "data-flow"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        _, issues = self.trace(context)
        return issues

    def trace(self, context: ValidationContext) -> Tuple[List[DataFlowValidation], List[ValidationIssue]]:
        """Return one :class:`DataFlowValidation` per edge plus the issues found."""
        flows: List[DataFlowValidation] = []
        issues: List[ValidationIssue] = []
        for producer, consumer in context.edges():
            flow, found = self._check_edge(context, producer, consumer)
            flows.append(flow)
            issues.extend(found)
        return flows, issues

    def _check_edge(
        self, context: ValidationContext, producer: str, consumer: str
    ) -> Tuple[DataFlowValidation, List[ValidationIssue]]:
        upstream = context.result(producer)
        downstream = context.result(consumer)

        if upstream is None:
            return (
                DataFlowValidation(producer, consumer, False, "producer did not run"),
                [
                    issue(
                        "missing-producer",
                        ERROR,
                        f"Analyzer '{consumer}' depends on '{producer}', which produced no result",
                        producer=producer,
                        consumer=consumer,
                    )
                ],
            )
        if not upstream.success:
            if downstream is not None and downstream.success:
                message = f"Analyzer '{consumer}' ran without data from failed analyzer '{producer}'"
            else:
                message = f"Analyzer '{consumer}' produced nothing; its input '{producer}' failed"
            return (
                DataFlowValidation(producer, consumer, False, "producer failed"),
                [
                    issue(
                        "upstream-unavailable",
                        WARNING,
                        message,
                        producer=producer,
                        consumer=consumer,
                    )
                ],
            )
        if downstream is None:
            return DataFlowValidation(producer, consumer, False, "consumer did not run"), []

        issues: List[ValidationIssue] = []
        if producer == "language" and isinstance(downstream.data, CommandInfo):
            flow = self._language_to_commands(context, downstream.data, issues)
        elif producer == "language" and isinstance(downstream.data, TestingInfo):
            flow = self._language_to_testing(context, downstream.data, issues)
        else:
            propagated = downstream.success
            flow = DataFlowValidation(
                producer,
                consumer,
                propagated,
                "consumer completed" if propagated else "consumer failed",
            )

        upstream_quality = context.quality(producer)
        downstream_quality = context.quality(consumer)
        if (
            upstream_quality < context.confidence_threshold
            and downstream_quality >= upstream_quality + INVERSION_MARGIN
        ):
            issues.append(
                issue(
                    "low-quality-upstream",
                    WARNING,
                    f"Analyzer '{consumer}' ({downstream_quality:.2f}) is far more confident "
                    f"than its input '{producer}' ({upstream_quality:.2f})",
                    producer=producer,
                    consumer=consumer,
                )
            )
        return flow, issues

    def _language_to_commands(
        self, context: ValidationContext, info: CommandInfo, issues: List[ValidationIssue]
    ) -> DataFlowValidation:
        languages = context.detected_languages()
        commands = info.all_commands()
        if not languages or not commands:
            return DataFlowValidation("language", "commands", True, "nothing to associate")

        associated = [
            command
            for command in commands
            if (command.context_language or command.language) in languages
        ]
        ratio = len(associated) / len(commands)
        detail = f"{len(associated)}/{len(commands)} commands associated with detected languages"
        if not associated:
            issues.append(
                issue(
                    "no-propagation",
                    WARNING,
                    "No command is associated with a detected language: "
                    + ", ".join(sorted(languages)),
                    producer="language",
                    consumer="commands",
                )
            )
            return DataFlowValidation("language", "commands", False, detail)
        if ratio < PARTIAL_PROPAGATION_RATIO:
            issues.append(
                issue(
                    "partial-propagation",
                    INFO,
                    f"Only {detail}",
                    producer="language",
                    consumer="commands",
                )
            )
        return DataFlowValidation("language", "commands", True, detail)

    def _language_to_testing(
        self, context: ValidationContext, info: TestingInfo, issues: List[ValidationIssue]
    ) -> DataFlowValidation:
        languages = context.detected_languages()
        if not languages or not info.frameworks:
            return DataFlowValidation("language", "testing", True, "nothing to associate")

        matched = [framework for framework in info.frameworks if framework.language in languages]
        detail = f"{len(matched)}/{len(info.frameworks)} frameworks match detected languages"
        if matched:
            return DataFlowValidation("language", "testing", True, detail)
        issues.append(
            issue(
                "no-propagation",
                WARNING,
                "No testing framework matches a detected language: "
                + ", ".join(sorted(languages)),
                producer="language",
                consumer="testing",
            )
        )
        return DataFlowValidation("language", "testing", False, detail)


__all__ = ["DataFlowValidator"]
