"""
Poll scheduler: drives fetch -> classify -> build -> publish on a fixed interval.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .classify import classify
from .config import ClassificationRules, LayoutConfig, POLL_INTERVAL_SECONDS, validate_network_id
from .events import EventTypes, log_error, log_event
from .fetch import ResourceFetcher, join_tags
from .models import PollResult, RawInstance, RawLoadBalancer
from .topology import build

logger = logging.getLogger(__name__)

Publisher = Callable[[PollResult], None]
ErrorReporter = Callable[[str, Exception], None]
EventCallback = Callable[[str, Dict[str, Any]], None]


class SchedulerState(Enum):
    """Scheduler lifecycle states."""
    IDLE = "idle"
    POLLING = "polling"
    PUBLISHED = "published"


def fetch_resources(fetcher: ResourceFetcher, vpc_id: str,
                    report_error: ErrorReporter = log_error
                    ) -> Tuple[List[RawInstance], List[RawLoadBalancer]]:
    """
    Fetch instances and tagged load balancers concurrently.

    Both listings must succeed; their errors propagate. A failing tag lookup
    is reported and leaves the load balancers untagged.

    Args:
        fetcher: Resource source
        vpc_id: VPC to list
        report_error: Sink for the tag lookup failure

    Returns:
        Tuple of (instances, load balancers)
    """
    def load_balancers_with_tags() -> List[RawLoadBalancer]:
        load_balancers = fetcher.fetch_load_balancers(vpc_id)
        try:
            tag_map = fetcher.fetch_load_balancer_tags([lb.arn for lb in load_balancers])
        except Exception as e:
            report_error(f"Tag lookup for load balancers in {vpc_id}", e)
            tag_map = {}
        return join_tags(load_balancers, tag_map)

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="vpcwatch-fetch") as pool:
        instances_future = pool.submit(fetcher.fetch_instances, vpc_id)
        lbs_future = pool.submit(load_balancers_with_tags)
        # Both futures finish before the pool exits, even when one raises
        return instances_future.result(), lbs_future.result()


def collect_topology(fetcher: ResourceFetcher, vpc_id: str,
                     rules: Optional[ClassificationRules] = None,
                     layout: Optional[LayoutConfig] = None,
                     report_error: ErrorReporter = log_error) -> PollResult:
    """Run one fetch -> classify -> build pass. Fetch errors propagate."""
    instances, load_balancers = fetch_resources(fetcher, vpc_id, report_error)
    classified_instances, classified_lbs = classify(instances, load_balancers, rules)
    return build(classified_instances, classified_lbs, layout)


class PollScheduler:
    """
    Polls one VPC on a fixed interval and publishes each new topology.

    Cycles run one at a time on a single worker thread. A cycle that overruns
    the interval delays the next one instead of overlapping it. Stopping or
    re-targeting the scheduler bumps a generation counter, and any cycle
    started under an older generation drops its result.
    """

    def __init__(
        self,
        fetcher: ResourceFetcher,
        publish: Optional[Publisher] = None,
        report_error: ErrorReporter = log_error,
        event_callback: EventCallback = log_event,
        interval: float = POLL_INTERVAL_SECONDS,
        rules: Optional[ClassificationRules] = None,
        layout: Optional[LayoutConfig] = None,
    ):
        self.fetcher = fetcher
        self.publish = publish
        self.report_error = report_error
        self.event_callback = event_callback
        self.interval = interval
        self.rules = rules
        self.layout = layout

        self._lock = threading.RLock()
        self._cycle_lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._network_id: Optional[str] = None
        self._generation = 0
        self._last_result: Optional[PollResult] = None
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    @property
    def network_id(self) -> Optional[str]:
        with self._lock:
            return self._network_id

    @property
    def last_result(self) -> Optional[PollResult]:
        with self._lock:
            return self._last_result

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self, network_id: str) -> None:
        """
        Begin polling a VPC: one immediate cycle, then one per interval.

        Raises:
            InvalidNetworkIdError: If network_id is blank; nothing is fetched
        """
        network_id = validate_network_id(network_id)
        self.stop()

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._network_id = network_id
            self._state = SchedulerState.POLLING
            stop_event = threading.Event()
            self._stop_event = stop_event

        self._emit(EventTypes.SCHEDULER_START, {"vpc_id": network_id, "interval": self.interval})
        thread = threading.Thread(
            target=self._run,
            args=(generation, stop_event),
            name=f"vpcwatch-poll-{network_id}",
            daemon=True,
        )
        self._thread = thread
        thread.start()

    def stop(self) -> Optional[threading.Thread]:
        """
        Cancel the timer, forget the VPC and return to idle.

        Does not wait for an in-flight cycle; its result is discarded when it
        finishes.

        Returns:
            The worker thread that was running, if any
        """
        with self._lock:
            was_active = self._state is not SchedulerState.IDLE
            network_id = self._network_id
            self._generation += 1
            self._state = SchedulerState.IDLE
            self._network_id = None
            self._last_result = None
            stop_event, self._stop_event = self._stop_event, None
            thread, self._thread = self._thread, None

        if stop_event is not None:
            stop_event.set()
        if was_active:
            self._emit(EventTypes.SCHEDULER_STOP, {"vpc_id": network_id})
        return thread

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Stop and wait up to timeout seconds for the worker thread to exit."""
        thread = self.stop()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def run_cycle(self, generation: Optional[int] = None) -> Optional[PollResult]:
        """
        Run a single poll cycle for the current VPC.

        Args:
            generation: Generation the cycle belongs to; defaults to the current one

        Returns:
            The published PollResult, or None if the cycle failed, was
            cancelled or no VPC is configured
        """
        with self._cycle_lock:
            with self._lock:
                if generation is None:
                    generation = self._generation
                network_id = self._network_id
                if generation != self._generation or network_id is None:
                    return None

            self._emit(EventTypes.POLL_START, {"vpc_id": network_id})
            started = time.monotonic()
            try:
                instances, load_balancers = fetch_resources(self.fetcher, network_id, self._report)
            except Exception as e:
                self._report(f"Poll cycle for {network_id}", e)
                self._emit(EventTypes.POLL_FAILED, {"vpc_id": network_id, "error": str(e)})
                return None

            classified_instances, classified_lbs = classify(instances, load_balancers, self.rules)
            result = build(classified_instances, classified_lbs, self.layout)

            with self._lock:
                if generation != self._generation:
                    logger.info(f"Discarding poll result for {network_id}: scheduler was stopped or re-targeted")
                    stale = True
                else:
                    stale = False
                    self._last_result = result
                    self._state = SchedulerState.PUBLISHED
                    self._publish(result)

            if stale:
                self._emit(EventTypes.POLL_DISCARDED, {"vpc_id": network_id})
                return None

            self._emit(EventTypes.POLL_OK, {
                "vpc_id": network_id,
                "nodes": len(result.nodes),
                "edges": len(result.edges),
                "elapsed": round(time.monotonic() - started, 3),
            })
            return result

    def _run(self, generation: int, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            started = time.monotonic()
            try:
                self.run_cycle(generation)
            except Exception as e:
                # Keep the timer alive; the next interval is the retry
                self._report("Unexpected poll cycle error", e)
            remaining = self.interval - (time.monotonic() - started)
            if stop_event.wait(max(0.0, remaining)):
                break

    def _publish(self, result: PollResult) -> None:
        if self.publish is None:
            return
        try:
            self.publish(result)
        except Exception as e:
            self._report("Publishing topology", e)

    def _report(self, context: str, error: Exception) -> None:
        try:
            self.report_error(context, error)
        except Exception:
            logger.exception(f"Error reporter failed while handling: {context}")

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        try:
            self.event_callback(event_type, data)
        except Exception:
            logger.exception(f"Event callback failed for {event_type}")
