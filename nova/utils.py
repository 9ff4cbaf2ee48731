import time as time_module
from datetime import datetime, date, time, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from dateutil import tz

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def to_local_date(dt_utc: datetime, local_tz: str, cutover_hhmm: str) -> date:
    tzinfo = tz.gettz(local_tz)
    loc = dt_utc.astimezone(tzinfo)
    hh, mm = cutover_hhmm.split(":"); cut = time(int(hh), int(mm))
    # If before cutover treat as previous local date
    if loc.timetz() < cut.replace(tzinfo=loc.tzinfo):
        loc = (loc - timedelta(days=1))
    return loc.date()

def local_today(local_tz: str, cutover_hhmm: str = "00:00") -> date:
    return to_local_date(datetime.now(timezone.utc), local_tz, cutover_hhmm)

def to_money(val) -> Decimal:
    """Coerce a provider or storage value to a cent-quantized Decimal; None and junk become 0."""
    if val is None or isinstance(val, bool):
        return ZERO
    try:
        # str() first so floats like 0.1 keep their printed value
        amount = Decimal(str(val)) if not isinstance(val, Decimal) else val
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount.quantize(CENT, rounding=ROUND_HALF_EVEN)

def retry_call(
    fn,
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 5.0,
    retry_on: tuple = (Exception,),
    deadline: float | None = None,
):
    for attempt in range(1, attempts + 1):
        if deadline is not None and time_module.monotonic() >= deadline:
            raise TimeoutError("time_budget_exceeded")
        try:
            return fn()
        except retry_on:
            if attempt >= attempts:
                raise
            _sleep_with_deadline(base_delay, attempt, max_delay, deadline)
    raise ValueError("attempts must be >= 1")

def _sleep_with_deadline(base_delay: float, attempt: int, max_delay: float, deadline: float | None):
    delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
    if deadline is not None:
        remaining = deadline - time_module.monotonic()
        if remaining <= 0:
            raise TimeoutError("time_budget_exceeded")
        delay = min(delay, max(0.0, remaining))
    if delay > 0:
        time_module.sleep(delay)
