"""Command that load-tests coupon issuing against a running coupon server."""

from __future__ import annotations

import argparse
import logging
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Sequence

from couponsvc.service import RpcError
from couponsvc.transport import CouponServiceClient

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8080"
DEFAULT_COUPONS = 1000
DEFAULT_REQUESTS = 2000

_MAX_WORKERS = 256
_SHOWN_CODES = 10


@dataclass
class LoadTestResult:
    """What a burst of concurrent issue requests produced."""

    total_requests: int
    duration: float
    codes: list[str] = field(default_factory=list)
    errors: dict[str, int] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.codes)

    @property
    def failure_count(self) -> int:
        return self.total_requests - self.success_count

    @property
    def throughput(self) -> float:
        """Requests per second over the whole run."""
        if self.duration <= 0:
            return float("inf")
        return self.total_requests / self.duration


def run_load_test(client, campaign_id: int, total_requests: int) -> LoadTestResult:
    """Fire ``total_requests`` concurrent issue requests and tally the outcome."""
    if total_requests < 0:
        raise ValueError("total_requests must not be negative")

    codes: list[str] = []
    errors: Counter[str] = Counter()
    workers = max(1, min(total_requests, _MAX_WORKERS))

    start = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(client.issue_coupon, campaign_id) for _ in range(total_requests)
        ]
        for future in as_completed(futures):
            try:
                coupon = future.result()
            except Exception as exc:  # noqa: BLE001 - every failure is counted
                errors[str(exc)] += 1
                continue
            codes.append(coupon.code)
            logger.info("쿠폰 발급 성공: %s", coupon.code)
    duration = time.perf_counter() - start

    return LoadTestResult(
        total_requests=total_requests,
        duration=duration,
        codes=codes,
        errors=dict(errors),
    )


def _format_codes(codes: Sequence[str]) -> list[str]:
    lines = ["", f"발급된 쿠폰 수: {len(codes)}"]
    if codes:
        lines.append(f"발급된 쿠폰 코드 (처음 {_SHOWN_CODES}개):")
        lines.extend(f"- {code}" for code in codes[:_SHOWN_CODES])
        if len(codes) > _SHOWN_CODES:
            lines.append(f"... 외 {len(codes) - _SHOWN_CODES}개")
    return lines


def format_report(result: LoadTestResult, codes: Sequence[str] | None) -> str:
    """Render the test result and, when given, the issued codes as text."""
    lines = [
        "",
        "=== 동시성 테스트 결과 ===",
        f"총 실행 시간: {result.duration:.3f}s",
        f"초당 처리량: {result.throughput:.2f} req/s",
        f"성공: {result.success_count}건",
        f"실패: {result.failure_count}건",
        "에러 종류:",
    ]
    lines.extend(f"- {message}: {count}건" for message, count in result.errors.items())
    if codes is not None:
        lines.extend(_format_codes(codes))
    return "\n".join(lines)


def main(argv=None) -> int:
    """Create a campaign, hammer it with issue requests and report."""
    parser = argparse.ArgumentParser(description="Load-test coupon issuing.")
    parser.add_argument("--url", default=DEFAULT_URL, help="base URL of the server")
    parser.add_argument("--coupons", type=int, default=DEFAULT_COUPONS)
    parser.add_argument("--requests", type=int, default=DEFAULT_REQUESTS)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    client = CouponServiceClient(args.url)
    try:
        campaign = client.create_campaign(args.coupons, int(time.time()))
    except RpcError as exc:
        logger.error("%s", exc)
        return 1
    logger.info(
        "캠페인 생성 완료: ID=%d, 총 쿠폰=%d", campaign.id, campaign.total_coupons
    )

    logger.info("동시성 테스트 시작...")
    result = run_load_test(client, campaign.id, args.requests)
    logger.info("%s", format_report(result, None))

    try:
        codes = client.get_issued_coupons(campaign.id)
    except RpcError as exc:
        logger.error("%s", exc)
        return 1
    logger.info("%s", "\n".join(_format_codes(codes)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())