"""
Admission harness: drives the fixed scenario sequence against kms and controller.
"""

import logging
import time
from enum import Enum
from typing import List, Optional, Sequence

from .comparator import OutcomeComparator
from .controller import ControllerClient
from .errors import ErrorCode, HarnessError
from .kms import KmsClient
from .reporter import ReportGenerator, RunReport, ScenarioResult
from .scenarios import SCENARIOS, Scenario
from .settings import HarnessConfig
from .types import KeyPair

logger = logging.getLogger(__name__)


class RunState(Enum):
    INIT = "init"
    KEY_READY = "key_ready"
    HEIGHT_KNOWN = "height_known"
    SCENARIO = "scenario"
    DONE = "done"
    FAILED = "failed"


class AdmissionHarness:
    """Runs every scenario in order and stops at the first mismatch.

    Infrastructure failures raise `HarnessError` out of `run_all`; scenario
    mismatches are reported as failed results.
    """

    def __init__(self, config: HarnessConfig, scenarios: Sequence[Scenario] = SCENARIOS):
        self.config = config
        self.scenarios = tuple(scenarios)
        self.kms = KmsClient(config.kms)
        self.controller = ControllerClient(config.controller)
        self.comparator = OutcomeComparator()
        self.reporter = ReportGenerator()

        self.state = RunState.INIT
        self.key_pair: Optional[KeyPair] = None
        self.height: Optional[int] = None

    async def setup(self) -> None:
        """Open one channel to each service."""
        for client in (self.kms, self.controller):
            await client.connect(timeout=self.config.connect_timeout)
            logger.info(f"grpc port of {client.config.name} service: {client.config.port}")

    async def teardown(self) -> None:
        """Close both channels."""
        await self.kms.close()
        await self.controller.close()

    async def prepare(self) -> None:
        """Create the signing identity and capture the starting height."""
        self._require(RunState.INIT)
        self.key_pair = await self.kms.generate_key_pair()
        self.state = RunState.KEY_READY

        self.height = await self.controller.get_block_number()
        self.state = RunState.HEIGHT_KNOWN
        logger.info(f"block_number is {self.height} before start")

    async def run_scenario(self, scenario: Scenario) -> ScenarioResult:
        """Build, sign and submit one scenario's transaction, then check the outcome."""
        self._require(RunState.HEIGHT_KNOWN, RunState.SCENARIO)
        self.state = RunState.SCENARIO
        start_time = time.time()

        tx = scenario.build(self.height)
        utx = await self.kms.sign_transaction(self.key_pair, tx)
        outcome = await self.controller.send_raw_transaction(utx)
        comparison = self.comparator.compare(scenario.name, scenario.expected, outcome)

        return ScenarioResult(
            scenario=scenario.name,
            expected=scenario.expected,
            actual=outcome.message,
            passed=not comparison.has_divergences,
            execution_time_ms=(time.time() - start_time) * 1000,
            divergence=comparison.divergences[0] if comparison.divergences else None,
        )

    async def run_all(self) -> RunReport:
        """Run the whole sequence and build the report."""
        start_time = time.time()
        results: List[ScenarioResult] = []

        try:
            await self.prepare()
            for scenario in self.scenarios:
                result = await self.run_scenario(scenario)
                results.append(result)

                status = "PASS" if result.passed else "FAIL"
                logger.info(f"  [{status}] {scenario.name}")

                if not result.passed:
                    logger.error(
                        f"scenario {scenario.name} failed: {result.divergence.details}"
                    )
                    self.state = RunState.FAILED
                    break
            else:
                self.state = RunState.DONE
        except HarnessError:
            self.state = RunState.FAILED
            raise

        return self.reporter.generate_report(
            results=results,
            total_scenarios=len(self.scenarios),
            kms_endpoint=self.config.kms.target,
            controller_endpoint=self.config.controller.target,
            key_id=self.key_pair.key_id if self.key_pair else None,
            start_height=self.height,
            execution_time_ms=(time.time() - start_time) * 1000,
        )

    def _require(self, *states: RunState) -> None:
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise HarnessError(
                ErrorCode.INVALID_STATE,
                f"harness is in state {self.state.value}, expected {expected}",
            )
