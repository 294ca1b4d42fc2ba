"""
filecabinet/instrumentation.py
Decorators around a RecordStore that add logging or timing to every public
operation without changing its behaviour.

  ServiceLogger  logs each call and its result on the "filecabinet.service"
                 logger
  ServiceMeter   measures each call and reports the duration in ticks
                 (100 ns units)

Both can wrap a store or each other:
    ServiceLogger(ServiceMeter(store))
"""

from __future__ import annotations
import logging
import time
from typing import Any, Callable, Iterator, Mapping

from filecabinet.record import Field, Record, RecordParameters
from filecabinet.snapshot import Snapshot

service_logger = logging.getLogger("filecabinet.service")
meter_logger = logging.getLogger(__name__)


def _describe(params: RecordParameters) -> str:
    return ", ".join(f"{name} = '{value}'" for name, value in params.supplied().items())


def _describe_criteria(criteria: Any) -> str:
    pairs = criteria.items() if isinstance(criteria, Mapping) else criteria
    return ", ".join(f"{field.value} = '{value}'" for field, value in pairs)


class _StoreDecorator:
    """Forwards every store operation through _invoke()."""

    def __init__(self, service: Any) -> None:
        self._service = service

    def _invoke(self, name: str, arguments: str, call: Callable[[], Any]) -> Any:
        raise NotImplementedError

    def create(self, params: RecordParameters) -> int:
        return self._invoke("create", _describe(params), lambda: self._service.create(params))

    def insert(self, params: RecordParameters, record_id: int) -> None:
        return self._invoke(
            "insert", f"id = '{record_id}', {_describe(params)}",
            lambda: self._service.insert(params, record_id),
        )

    def update(self, params: RecordParameters, criteria: Mapping[Field, Any]) -> int:
        return self._invoke(
            "update", f"{_describe(params)} where {_describe_criteria(criteria)}",
            lambda: self._service.update(params, criteria),
        )

    def delete(self, field: Field, value: Any) -> list[int]:
        return self._invoke(
            "delete", f"{field.value} = '{value}'", lambda: self._service.delete(field, value)
        )

    def find(self, field: Field, value: Any) -> list[Record]:
        return self._invoke(
            "find", f"{field.value} = '{value}'", lambda: self._service.find(field, value)
        )

    def select(self, criteria: Any, any_of: bool = False) -> list[Record]:
        joiner = "or" if any_of else "and"
        return self._invoke(
            "select", f"{_describe_criteria(criteria)} ({joiner})",
            lambda: self._service.select(criteria, any_of),
        )

    def get_records(self) -> Iterator[Record]:
        return self._invoke("get_records", "", self._service.get_records)

    def get_stat(self) -> tuple[int, int]:
        return self._invoke("get_stat", "", self._service.get_stat)

    def is_record_present(self, record_id: int) -> tuple[bool, int]:
        return self._invoke(
            "is_record_present", f"id = '{record_id}'",
            lambda: self._service.is_record_present(record_id),
        )

    def make_snapshot(self) -> Snapshot:
        return self._invoke("make_snapshot", "", self._service.make_snapshot)

    def restore(self, snapshot: Snapshot) -> dict[int, str]:
        return self._invoke(
            "restore", f"{len(snapshot)} record(s)", lambda: self._service.restore(snapshot)
        )

    def purge(self) -> tuple[int, int]:
        return self._invoke("purge", "", self._service.purge)

    def close(self) -> None:
        self._service.close()

    def __getattr__(self, name: str) -> Any:
        # anything not instrumented (filepath, indexes, ...) goes straight through
        return getattr(self._service, name)

    def __enter__(self) -> "_StoreDecorator":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class ServiceLogger(_StoreDecorator):
    def __init__(self, service: Any, logger: logging.Logger = service_logger) -> None:
        super().__init__(service)
        self._logger = logger

    def _invoke(self, name: str, arguments: str, call: Callable[[], Any]) -> Any:
        if arguments:
            self._logger.info("Calling %s() with %s", name, arguments)
        else:
            self._logger.info("Calling %s()", name)
        try:
            result = call()
        except Exception as e:
            self._logger.info("%s() failed: %s", name, e)
            raise
        if isinstance(result, Iterator):
            self._logger.info("%s() returned records", name)
        else:
            self._logger.info("%s() returned '%s'", name, result)
        return result


class ServiceMeter(_StoreDecorator):
    def __init__(self, service: Any, write: Callable[[str], None] = print) -> None:
        super().__init__(service)
        self._write = write
        self.last_ticks = 0

    def _invoke(self, name: str, arguments: str, call: Callable[[], Any]) -> Any:
        started = time.perf_counter_ns()
        try:
            return call()
        finally:
            self.last_ticks = (time.perf_counter_ns() - started) // 100
            message = f"{name.capitalize()} method execution duration is {self.last_ticks} ticks."
            meter_logger.debug(message)
            self._write(message)
