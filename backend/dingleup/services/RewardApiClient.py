# -*- coding: utf-8 -*-
"""HTTP client for the reward endpoints, plus the glue that turns a playlist
into a ready-to-drive PlaybackGate."""
import logging
import time

import requests

from dingleup.services.PlaybackGate import DEFAULT_SEGMENT_SECONDS, PlaybackGate
from dingleup.services.RetryPolicy import DEFAULT_RETRY_POLICY, run_with_retry
from dingleup.services.RewardCompletionHandler import RewardCompletionHandler

logger = logging.getLogger(__name__)


class RewardApiError(Exception):
    """Structured failure returned by the reward endpoints"""

    def __init__(self, error_code, status_code=None):
        super().__init__(f"{error_code} (HTTP {status_code})")
        self.error_code = error_code
        self.status_code = status_code


class RewardApiClient:

    def __init__(self, base_url, token, session=None, policy=DEFAULT_RETRY_POLICY, timeout=30, sleep=time.sleep):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.session = session or requests.Session()
        self.policy = policy
        self.timeout = timeout
        self.sleep = sleep

    @staticmethod
    def _is_retryable_error(error):
        return isinstance(error, (requests.ConnectionError, requests.Timeout))

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.token}"}

        def send():
            return self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)

        return run_with_retry(
            send,
            self.policy,
            is_retryable_error=self._is_retryable_error,
            is_retryable_result=lambda response: self.policy.is_retryable_status(response.status_code),
            sleep=self.sleep
        )

    @staticmethod
    def _payload(response, require_success=True):
        try:
            payload = response.json()
        except ValueError:
            # 网关错误页等非JSON响应
            raise RewardApiError("UNKNOWN_ERROR", response.status_code)
        if not isinstance(payload, dict):
            raise RewardApiError("UNKNOWN_ERROR", response.status_code)
        if require_success and not payload.get("success"):
            raise RewardApiError(payload.get("error", "UNKNOWN_ERROR"), response.status_code)
        return payload

    def request_reward_playlist(self, event_type, original_reward=0):
        """
        :return: playlist payload when success is true
        :raises RewardApiError: NO_VIDEOS_AVAILABLE / DATABASE_ERROR / ...
        """
        response = self._request("POST", "/reward-start", json={
            "eventType": event_type,
            "originalReward": original_reward,
        })
        return self._payload(response)

    def complete_reward(self, session_id, watched_video_ids):
        response = self._request("POST", "/reward-complete", json={
            "rewardSessionId": session_id,
            "watchedVideoIds": list(watched_video_ids),
        })
        return self._payload(response)

    def preload_reward_videos(self, count=10):
        response = self._request("GET", "/preload-reward-videos", params={"count": count})
        return self._payload(response, require_success=False).get("videos", [])

    def build_gate(self, playlist, notify=None, report_watched=None, on_completed=None,
                   segment_seconds=DEFAULT_SEGMENT_SECONDS, clock=time.monotonic):
        """
        Wire a reward-start payload to a PlaybackGate whose close action
        credits through /reward-complete exactly once.
        :return: (gate, handler)
        """
        handler = RewardCompletionHandler(
            event_type=playlist["eventType"],
            credit=self.complete_reward,
            notify=notify,
            report_watched=report_watched,
            session_id=playlist["rewardSessionId"],
            original_reward=playlist.get("originalReward", 0)
        )
        gate = PlaybackGate(
            playlist["videos"],
            segment_seconds=segment_seconds,
            on_reconcile=handler,
            on_completed=on_completed,
            on_ready=(lambda: notify("info", "Now close the video to claim your reward!")) if notify else None,
            clock=clock
        )
        return gate, handler
