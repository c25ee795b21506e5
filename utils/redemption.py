# utils/redemption.py
# =============================================================================
# 📷 Voucher scanning state machine
# -----------------------------------------------------------------------------
#   idle --start--> scanning --frame decoded--> decoding --> validating
#        --> test_result | live_redeemed | error --scan_another--> idle
#
# The mode is fixed per instance. Only a live scanner holds a
# RedemptionRecorder; in test mode there is no object that could write a
# voucher_usage row or touch current_uses.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from database import utc_now
from utils.redemption_store import RedemptionRecorder, VoucherLookup, make_scan_key
from utils.scanner_mode import ScannerMode
from utils.voucher_errors import (
    CameraAccessError,
    InvalidVoucherError,
    NotFoundError,
    PersistenceError,
    VoucherError,
)
from utils.voucher_qr import QRPayload, decode, validate
from utils.voucher_settings import redemption_dedupe_seconds
from utils.voucher_validity import VoucherStatus, evaluate

logger = logging.getLogger("vouchers.scanner")


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DECODING = "decoding"
    VALIDATING = "validating"
    TEST_RESULT = "test_result"
    LIVE_REDEEMED = "live_redeemed"
    ERROR = "error"


TERMINAL_STATES = frozenset({ScanState.TEST_RESULT, ScanState.LIVE_REDEEMED, ScanState.ERROR})


class CameraCapture(Protocol):
    """Exclusive video source; release() must free the device."""

    def open(self) -> None: ...

    def read_frame(self) -> Optional[Any]: ...

    def release(self) -> None: ...


# returns the QR text found in a frame, or None
FrameDecoder = Callable[[Any], Optional[str]]


@dataclass(frozen=True)
class ScanResult:
    mode: str
    voucher_id: str
    title: str
    code: str
    uses: int
    redeemed: bool
    usage_id: Optional[str] = None
    duplicate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RedemptionStateMachine:
    def __init__(
        self,
        business_id: str,
        mode: ScannerMode,
        lookup: VoucherLookup,
        recorder: Optional[RedemptionRecorder] = None,
        camera: Optional[CameraCapture] = None,
        decoder: Optional[FrameDecoder] = None,
        clock: Callable[[], datetime] = utc_now,
        dedupe_window_seconds: Optional[int] = None,
        device_id: Optional[str] = None,
    ):
        self.business_id = str(business_id)
        self.device_id = device_id
        self.mode = ScannerMode(mode)
        self._lookup = lookup
        self._recorder: Optional[RedemptionRecorder] = None
        if self.mode is ScannerMode.LIVE:
            if recorder is None:
                raise ValueError("a live scanner needs a RedemptionRecorder")
            self._recorder = recorder

        self._camera = camera
        self._decoder = decoder
        self._camera_open = False
        self._clock = clock
        self._dedupe_window = (
            redemption_dedupe_seconds() if dedupe_window_seconds is None else dedupe_window_seconds
        )

        self.state = ScanState.IDLE
        self.result: Optional[ScanResult] = None
        self.error: Optional[VoucherError] = None

    # ---------------------------------------------------------------------
    # 📷 Camera
    # ---------------------------------------------------------------------
    @property
    def camera_active(self) -> bool:
        return self._camera_open

    def start(self) -> ScanState:
        if self.state is not ScanState.IDLE:
            return self.state
        if self._camera is None or self._decoder is None:
            return self._fail(CameraAccessError("No camera available on this device."))

        try:
            self._camera.open()
        except Exception as exc:
            logger.warning(f"⚠️ Camera error: {exc}")
            self._camera_open = True
            self._release()
            error = exc if isinstance(exc, CameraAccessError) else CameraAccessError()
            return self._fail(error)

        self._camera_open = True
        self.state = ScanState.SCANNING
        return self.state

    def poll(self) -> ScanState:
        """Reads one frame; stays in scanning until a QR code shows up."""
        if self.state is not ScanState.SCANNING:
            return self.state

        try:
            frame = self._camera.read_frame()
            raw = self._decoder(frame) if frame is not None else None
        except Exception as exc:
            logger.warning(f"⚠️ Camera stopped delivering frames: {exc}")
            self._release()
            return self._fail(CameraAccessError("Camera stopped responding. Please try again."))

        if raw is None:
            return self.state
        return self.submit(raw)

    def run(self, max_frames: Optional[int] = None) -> ScanState:
        frames = 0
        while self.state is ScanState.SCANNING:
            if max_frames is not None and frames >= max_frames:
                break
            self.poll()
            frames += 1
        return self.state

    def stop(self) -> ScanState:
        self._release()
        if self.state is ScanState.SCANNING:
            self.state = ScanState.IDLE
        return self.state

    def _release(self) -> None:
        if not self._camera_open:
            return
        self._camera_open = False
        if self._camera is None:
            return
        try:
            self._camera.release()
        except Exception:
            logger.exception("❌ Camera release failed")

    # ---------------------------------------------------------------------
    # 🔍 Decoding + validation
    # ---------------------------------------------------------------------
    def submit(
        self,
        raw: str,
        scan_nonce: Optional[str] = None,
        user_email: Optional[str] = None,
    ) -> ScanState:
        """
        Handles one decoded QR string, either from poll() or from a camera
        running in the browser. Never raises; failures end in ScanState.ERROR.
        """
        if self.state not in (ScanState.IDLE, ScanState.SCANNING):
            return self.state

        self._release()
        self.state = ScanState.DECODING
        try:
            payload = decode(raw)
            validate(payload, self.business_id)

            self.state = ScanState.VALIDATING
            voucher = self._lookup.get_voucher(payload.voucher_id)
            if voucher is None or str(voucher.business_id) != self.business_id:
                raise NotFoundError()

            now = self._clock()
            status = evaluate(voucher, now)
            if status is not VoucherStatus.ACTIVE:
                raise InvalidVoucherError(status.value)

            if self.mode is ScannerMode.TEST:
                return self._finish_test(voucher, payload)
            return self._finish_live(voucher, payload, now, scan_nonce, user_email)

        except VoucherError as exc:
            return self._fail(exc)
        except Exception:
            logger.exception("❌ Voucher QR processing failed")
            return self._fail(PersistenceError("Failed to process voucher QR"))

    def _finish_test(self, voucher: Any, payload: QRPayload) -> ScanState:
        would_be = (voucher.current_uses or 0) + 1
        self.result = ScanResult(
            mode=ScannerMode.TEST.value,
            voucher_id=str(voucher.id),
            title=voucher.title,
            code=payload.code,
            uses=would_be,
            redeemed=False,
        )
        self.state = ScanState.TEST_RESULT
        logger.info(f"🧪 Test scan OK for voucher {voucher.id} (would be use #{would_be})")
        return self.state

    def _finish_live(
        self,
        voucher: Any,
        payload: QRPayload,
        now: datetime,
        scan_nonce: Optional[str],
        user_email: Optional[str],
    ) -> ScanState:
        voucher_id, title = str(voucher.id), voucher.title
        scan_key = make_scan_key(voucher_id, scan_nonce, self.device_id)
        recorded = self._recorder.record(
            voucher,
            now,
            scan_key=scan_key,
            user_email=user_email,
            device_id=self.device_id,
            dedupe_window_seconds=self._dedupe_window,
        )

        self.result = ScanResult(
            mode=ScannerMode.LIVE.value,
            voucher_id=voucher_id,
            title=title,
            code=payload.code,
            uses=recorded.current_uses,
            redeemed=True,
            usage_id=recorded.usage_id,
            duplicate=recorded.duplicate,
        )
        self.state = ScanState.LIVE_REDEEMED
        return self.state

    def _fail(self, error: VoucherError) -> ScanState:
        self._release()
        self.error = error
        self.result = None
        self.state = ScanState.ERROR
        logger.warning(f"⚠️ Scan rejected [{error.kind}]: {error.message}")
        return self.state

    # ---------------------------------------------------------------------
    # 🔁 Reset / teardown
    # ---------------------------------------------------------------------
    def scan_another(self) -> ScanState:
        self._release()
        self.state = ScanState.IDLE
        self.result = None
        self.error = None
        return self.state

    def acknowledge(self) -> ScanState:
        """Dismisses an error message."""
        return self.scan_another()

    def close(self) -> None:
        self._release()
        if self.state is ScanState.SCANNING:
            self.state = ScanState.IDLE

    def __enter__(self) -> "RedemptionStateMachine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "mode": self.mode.value,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error.to_dict() if self.error else None,
        }
