"""Step-sequenced provider for Amazon."""

from __future__ import annotations

import json
import logging
from typing import Awaitable, List, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..cloud.amazon import COST_S3_POLICY, AmazonApi, CostReport
from ..constants import (
    CREATE_COST_POLICY,
    PROVIDER_AMAZON,
    STEP_BIND_ROLE,
    STEP_COST_REPORT,
    STEP_POLICY,
    STEP_ROLE,
    STEP_S3,
)
from ..contracts import ForgedApplication, Step
from ..errors import (
    ResourceNotFoundError,
    StepExecutionError,
    UnimplementedStepError,
)
from ..log import RequestLogAdapter, request_logger
from ..teardown import TeardownSaga
from .base import BaseProvider
from .substitution import resource_name, substitute_in_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AmazonProvider(BaseProvider):
    """Runs the caller's steps in order against an :class:`AmazonApi`."""

    name = PROVIDER_AMAZON

    def __init__(self, client: AmazonApi, forge_timeout: float | None = None) -> None:
        super().__init__(forge_timeout=forge_timeout)
        self.client = client
        self._steps = {
            STEP_S3: self._create_bucket,
            STEP_COST_REPORT: self._create_cost_report,
            STEP_POLICY: self._create_policy,
            STEP_ROLE: self._create_role,
            STEP_BIND_ROLE: self._bind_role,
        }
        self._saga = TeardownSaga(
            [
                (STEP_BIND_ROLE, self._unbind_role),
                (STEP_POLICY, self._destroy_policy),
                (STEP_ROLE, self._destroy_role),
                (STEP_COST_REPORT, self._destroy_cost_report),
                (STEP_S3, self._destroy_bucket),
            ]
        )

    @property
    def teardown_order(self) -> tuple:
        return self._saga.order

    async def forge(self, forged: ForgedApplication) -> None:
        request = forged.request
        log = request_logger(
            logger,
            tenant_id=request.tenant_id,
            source_id=request.source_id,
            application_id=request.application_id,
        )
        for step in request.superkey_steps:
            handler = self._steps.get(step.name)
            if handler is None:
                raise UnimplementedStepError(step.name)
            await handler(forged, step, log)

        # The role ARN is what the inventory service hands out as username.
        username = forged.steps_completed.get(STEP_ROLE, {}).get("arn", "")
        forged.create_payload(username)

    async def tear_down(self, forged: ForgedApplication) -> List[Exception]:
        return await self._saga.run(forged)

    @staticmethod
    async def _call(step_name: str, description: str, operation: Awaitable[T]) -> T:
        try:
            return await operation
        except StepExecutionError:
            raise
        except Exception as exc:
            raise StepExecutionError(
                step_name, exc, f"failed to {description}: {exc}"
            ) from exc

    # -- forge steps ----------------------------------------------------
    async def _create_bucket(
        self, forged: ForgedApplication, step: Step, log: RequestLogAdapter
    ) -> None:
        name = resource_name(forged.request.application_type, "bucket", forged.guid)
        log.debug(f'Creating S3 bucket "{name}"')
        await self._call(STEP_S3, f'create S3 bucket "{name}"', self.client.create_bucket(name))
        forged.mark_completed(STEP_S3, {"output": name})
        log.info(f'S3 bucket "{name}" created')

        # Cost reporting needs a bucket policy so the report job can write into it.
        if step.payload == CREATE_COST_POLICY:
            policy = substitute_in_payload(COST_S3_POLICY, forged, step.substitutions)
            await self._call(
                STEP_S3,
                f'attach bucket policy to S3 bucket "{name}"',
                self.client.attach_bucket_policy(name, policy),
            )
            log.info(f'S3 bucket policy attached to bucket "{name}"')

    async def _create_cost_report(
        self, forged: ForgedApplication, step: Step, log: RequestLogAdapter
    ) -> None:
        payload = substitute_in_payload(step.payload, forged, step.substitutions)
        try:
            report = CostReport.model_validate(json.loads(payload))
        except (ValueError, PydanticValidationError) as exc:
            raise StepExecutionError(
                STEP_COST_REPORT,
                exc,
                f'failed to build cost report with payload "{payload}": {exc}',
            ) from exc

        report.report_name = f"{report.report_name}-{forged.guid}"
        log.debug(f'Creating cost and usage report "{report.report_name}"')
        await self._call(
            STEP_COST_REPORT,
            f'create cost and usage report "{report.report_name}"',
            self.client.create_cost_report(report),
        )
        forged.mark_completed(STEP_COST_REPORT, {"output": report.report_name})
        log.info(f'Cost and usage report "{report.report_name}" created')

    async def _create_policy(
        self, forged: ForgedApplication, step: Step, log: RequestLogAdapter
    ) -> None:
        name = resource_name(forged.request.application_type, "policy", forged.guid)
        payload = substitute_in_payload(step.payload, forged, step.substitutions)
        log.debug(f'Creating policy "{name}"')
        arn = await self._call(
            STEP_POLICY, f'create policy "{name}"', self.client.create_policy(name, payload)
        )
        forged.mark_completed(STEP_POLICY, {"output": arn})
        log.info(f'Policy "{name}" created')

    async def _create_role(
        self, forged: ForgedApplication, step: Step, log: RequestLogAdapter
    ) -> None:
        name = resource_name(forged.request.application_type, "role", forged.guid)
        payload = substitute_in_payload(step.payload, forged, step.substitutions)
        log.debug(f'Creating role "{name}"')
        arn = await self._call(
            STEP_ROLE, f'create role "{name}"', self.client.create_role(name, payload)
        )
        forged.mark_completed(STEP_ROLE, {"output": name, "arn": arn})
        log.info(f'Role "{name}" created')

    async def _bind_role(
        self, forged: ForgedApplication, step: Step, log: RequestLogAdapter
    ) -> None:
        role = forged.steps_completed.get(STEP_ROLE, {}).get("output", "")
        policy_arn = forged.steps_completed.get(STEP_POLICY, {}).get("output", "")
        log.debug(f'Binding role "{role}" to policy "{policy_arn}"')
        await self._call(
            STEP_BIND_ROLE,
            f'bind policy "{policy_arn}" to role "{role}"',
            self.client.bind_policy_to_role(policy_arn, role),
        )
        forged.mark_completed(STEP_BIND_ROLE, {})
        log.info(f'Bound role "{role}" to policy "{policy_arn}"')

    # -- compensations --------------------------------------------------
    async def _compensate(self, step_name: str, description: str, operation: Awaitable[None]) -> None:
        try:
            await operation
        except ResourceNotFoundError:
            raise
        except Exception as exc:
            raise StepExecutionError(
                step_name, exc, f"failed to {description}: {exc}"
            ) from exc

    async def _unbind_role(self, forged: ForgedApplication) -> None:
        policy_arn = forged.steps_completed.get(STEP_POLICY, {}).get("output", "")
        role = forged.steps_completed.get(STEP_ROLE, {}).get("output", "")
        await self._compensate(
            STEP_BIND_ROLE,
            f'unbind policy "{policy_arn}" from role "{role}"',
            self.client.unbind_policy_from_role(policy_arn, role),
        )

    async def _destroy_policy(self, forged: ForgedApplication) -> None:
        arn = forged.steps_completed[STEP_POLICY].get("output", "")
        await self._compensate(
            STEP_POLICY, f'destroy policy "{arn}"', self.client.destroy_policy(arn)
        )

    async def _destroy_role(self, forged: ForgedApplication) -> None:
        name = forged.steps_completed[STEP_ROLE].get("output", "")
        await self._compensate(
            STEP_ROLE, f'destroy role "{name}"', self.client.destroy_role(name)
        )

    async def _destroy_cost_report(self, forged: ForgedApplication) -> None:
        name = forged.steps_completed[STEP_COST_REPORT].get("output", "")
        await self._compensate(
            STEP_COST_REPORT,
            f'destroy cost and usage report "{name}"',
            self.client.destroy_cost_report(name),
        )

    async def _destroy_bucket(self, forged: ForgedApplication) -> None:
        bucket = forged.steps_completed[STEP_S3].get("output", "")
        await self._compensate(
            STEP_S3, f'destroy S3 bucket "{bucket}"', self.client.destroy_bucket(bucket)
        )
