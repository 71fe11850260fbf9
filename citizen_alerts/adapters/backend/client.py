"""
Backend API client for Citizen Alerts.

This module provides an aiohttp client for the incident backend.
Only the alert list endpoint is used by the filtering service.
"""

import aiohttp
from typing import Any, Dict, List, Optional
from citizen_alerts.common.retry import retry_with_backoff
from citizen_alerts.observability.logging_setup import get_logger

log = get_logger("citizenalerts.backend")

class BackendClient:
    """사건 백엔드 API 클라이언트 (AlertSourcePort 구현)"""
    
    def __init__(self, 
                 base_url: str, 
                 token: Optional[str] = None, 
                 timeout: int = 30,
                 max_retries: int = 3):
        """
        초기화합니다.
        
        Args:
            base_url: 백엔드 기본 URL (예: http://localhost:8080)
            token: Bearer 토큰 (없으면 인증 헤더 생략)
            timeout: 요청 타임아웃 (초)
            max_retries: 요청 재시도 횟수
        """
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries
        self.session: Optional[aiohttp.ClientSession] = None
    
    async def __aenter__(self):
        """비동기 컨텍스트 매니저 진입"""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self.session = aiohttp.ClientSession(
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """비동기 컨텍스트 매니저 종료"""
        if self.session:
            await self.session.close()
            self.session = None
    
    def api_path(self, endpoint: str) -> str:
        return f"{self.base_url}/api/{endpoint.lstrip('/')}"
    
    async def _make_request(self, method: str, endpoint: str, **kwargs) -> Any:
        if not self.session:
            raise RuntimeError("세션이 초기화되지 않았습니다. async with를 사용하세요.")
        
        url = self.api_path(endpoint)
        
        async def _request():
            async with self.session.request(method, url, **kwargs) as response:
                response.raise_for_status()
                return await response.json()
        
        return await retry_with_backoff(
            _request,
            max_retries=self.max_retries,
            retry_on=(aiohttp.ClientError, TimeoutError),
        )
    
    async def fetch_alerts(self) -> List[Dict[str, Any]]:
        """
        현재 경보 목록 전체를 가져옵니다.
        
        응답이 목록이거나 {"alerts": [...]} / {"data": [...]} 형태를 모두 허용합니다.
        
        Returns:
            원시 경보 레코드 목록
        """
        data = await self._make_request("GET", "alerts")
        if isinstance(data, dict):
            data = data.get("alerts", data.get("data"))
        if not isinstance(data, list):
            raise ValueError(f"예상하지 못한 경보 응답 형식: {type(data).__name__}")
        log.info(f"경보 목록 가져옴 count:{len(data)}")
        return data
