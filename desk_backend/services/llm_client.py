"""
파일 검색 질의 분석용 LLM 클라이언트 (Bedrock Claude)

- get_bedrock_llm: 환경 변수 기반 ChatBedrock 초기화 (미설정 시 None)
- BedrockJsonClient.generate_json: 프롬프트 → JSON 문자열
- build_file_search_parse_prompt / parse_llm_json: 파일 검색 파싱 프롬프트와 응답 파싱
"""

from __future__ import annotations

import base64
import json
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import boto3
from dotenv import load_dotenv
from langchain_aws import ChatBedrock
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate

# .env 로드
env_path = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_MODEL_ID = "anthropic.claude-3-5-sonnet-20241022-v2:0"


def decode_bedrock_key(encoded: str) -> Tuple[str, str]:
    """base64 "access:secret" 키 → (access_key, secret_key)

    디코딩이 안 되면 원문을 그대로 "access:secret" 형식으로 해석한다.
    """
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8").strip("\x00").strip()
    except (ValueError, UnicodeDecodeError):
        decoded = encoded
    if ":" in decoded:
        access_key, secret_key = decoded.split(":", 1)
        return access_key, secret_key
    return decoded, ""


def get_bedrock_llm(model_id: Optional[str] = None):
    """Bedrock Claude LLM 초기화 (파일 검색 질의 파싱용)

    Args:
        model_id: 모델 ID (None이면 SEARCH_LLM_MODEL_ID 또는 Claude 3.5 Sonnet)

    Returns:
        ChatBedrock 인스턴스 또는 None (비활성화/자격 증명 없음)
    """
    if os.getenv("SEARCH_LLM_ENABLED", "true").lower() in ("0", "false", "no"):
        return None
    if model_id is None:
        model_id = os.getenv("SEARCH_LLM_MODEL_ID") or DEFAULT_MODEL_ID

    region = os.getenv("AWS_REGION", "us-west-2")
    bedrock_key_encoded = os.getenv("AWS_BEARER_TOKEN_BEDROCK") or os.getenv("AWS_BEDROCK_API_KEY")

    if bedrock_key_encoded:
        access_key, secret_key = decode_bedrock_key(bedrock_key_encoded)
        if access_key and secret_key:
            session = boto3.Session(  # type: ignore
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region
            )
        else:
            session = boto3.Session(region_name=region)  # type: ignore
    elif os.getenv("AWS_ACCESS_KEY_ID") or os.getenv("AWS_PROFILE"):
        session = boto3.Session(region_name=region)  # type: ignore
    else:
        return None

    # 질의 파싱은 일관성이 중요하므로 temperature 0
    return ChatBedrock(  # type: ignore[call-arg]
        model_id=model_id,  # type: ignore[arg-type]
        region_name=region,  # type: ignore[arg-type]
        client=session.client("bedrock-runtime"),
        model_kwargs={"temperature": 0, "max_tokens": 1000},
    )


FILE_SEARCH_PARSE_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """당신은 업무 협업 툴의 파일 검색 질의를 분석하는 도우미입니다.
오늘 날짜는 {today} 입니다.

사용자 문장에서 아래 항목을 추출해 JSON 하나만 출력하세요. 알 수 없는 값은 null 입니다.
{{
  "dateRange": {{"from": "YYYY-MM-DD", "to": "YYYY-MM-DD"}},
  "counterEmail": "상대방 이메일 또는 닉네임",
  "department": "DESIGN | DEVELOPMENT | SALES | HR | FINANCE | PLANNING",
  "keyword": "파일 내용/이름을 나타내는 핵심 단어",
  "senderOnly": true/false,
  "receiverOnly": true/false
}}

규칙:
- 기간이 애매하면("한달전쯤", "2주 정도") 오늘을 기준으로 넉넉한 범위를 잡으세요.
- "디자인팀/디자인 부서"처럼 팀·부서 표현이 있을 때만 department를 채우세요. "배너디자인"은 키워드입니다.
- keyword에는 "파일", "자료", "관련", "찾아줘" 같은 검색 의도 단어를 넣지 마세요.
- 붙여 쓴 복합어는 의미 단위로 띄어 쓰세요. 예: "신제품기획서" → "신제품 기획서"
- "내가 보낸" → senderOnly=true, "내가 받은" → receiverOnly=true, "주고받은" → 둘 다 false
- 설명 없이 JSON만 출력하세요."""),
    ("human", "{query}"),
])


def build_file_search_parse_prompt(query: str, today: Optional[date] = None) -> str:
    """파일 검색 파싱 프롬프트 문자열 생성"""
    if today is None:
        today = date.today()
    prompt_value = FILE_SEARCH_PARSE_PROMPT.invoke({"today": today.isoformat(), "query": query})
    return prompt_value.to_string()


def parse_llm_json(result: Optional[str]) -> Optional[Dict[str, Any]]:
    """LLM 응답에서 첫 번째 JSON 객체 추출 (실패 시 None)"""
    if not result:
        return None
    start = result.find("{")
    end = result.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        parsed = json.loads(result[start:end])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class BedrockJsonClient:
    """generate_json(prompt) → 문자열 (llm | StrOutputParser 체인)"""

    def __init__(self, llm=None) -> None:
        self.llm = llm
        self.chain = (llm | StrOutputParser()) if llm is not None else None

    @property
    def available(self) -> bool:
        return self.chain is not None

    async def generate_json(self, prompt: str) -> str:
        if self.chain is None:
            raise RuntimeError("LLM이 설정되지 않았습니다 (AWS 자격 증명 또는 SEARCH_LLM_ENABLED 확인)")
        return await self.chain.ainvoke(prompt)


_LLM_CLIENT: Optional[BedrockJsonClient] = None


def get_llm_client() -> BedrockJsonClient:
    """프로세스 전역 LLM 클라이언트 (싱글톤)"""
    global _LLM_CLIENT
    if _LLM_CLIENT is None:
        try:
            _LLM_CLIENT = BedrockJsonClient(get_bedrock_llm())
        except Exception as e:
            print(f"⚠️ Bedrock LLM 초기화 실패, AI 파싱 비활성화: {e}")
            _LLM_CLIENT = BedrockJsonClient(None)
        if _LLM_CLIENT.available:
            print("✅ Bedrock LLM 초기화 완료 (파일 검색 파싱)")
    return _LLM_CLIENT
