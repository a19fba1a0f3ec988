"""智能裁剪建议模块。

RegionSuggester 是一个可选能力：给定一张图片，返回候选的相对裁剪区域。
核心流水线只把结果当作普通 RelativeRegion 使用，不依赖具体实现。
"""

import json
from typing import Any, Protocol, runtime_checkable

from .exceptions import SuggestionError
from .models.region import RelativeRegion
from .models.source_image import SourceImage
from .utils.logging_helpers import get_logger


logger = get_logger()

SUBJECT_PROMPT = (
    "Detect the main subject of this image. Return a bounding box that "
    "encompasses the most important visual element. The values should be "
    "percentages (0-100) relative to the image dimensions."
)


@runtime_checkable
class RegionSuggester(Protocol):
    """裁剪区域建议能力"""

    def suggest(self, image: SourceImage) -> RelativeRegion | None:
        """返回候选区域，没有建议时返回 None"""
        ...


class NoopRegionSuggester:
    """未启用智能建议时使用的空实现"""

    def suggest(self, image: SourceImage) -> RelativeRegion | None:  # noqa: ARG002
        return None


class GeminiRegionSuggester:
    """基于 Gemini 主体检测的区域建议"""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        client: Any = None,
    ) -> None:
        """创建建议器

        Args:
            api_key: Gemini API Key，默认读取 GEMINI_API_KEY
            model_name: 模型名称
            client: 预先创建的 google-genai 客户端（测试时注入）
        """
        from .config import get_config

        suggestion_config = get_config().suggestion
        self.api_key = api_key or suggestion_config.GEMINI_API_KEY
        self.model_name = model_name or suggestion_config.GEMINI_MODEL
        self._client = client

    def _get_client(self) -> Any:
        """延迟初始化 Gemini 客户端"""
        if self._client is None:
            if not self.api_key:
                raise SuggestionError("缺少 Gemini API Key")

            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _build_config(self) -> Any:
        from google.genai import types

        return types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "x": types.Schema(
                        type=types.Type.NUMBER,
                        description="Left X position in percentage (0-100)",
                    ),
                    "y": types.Schema(
                        type=types.Type.NUMBER,
                        description="Top Y position in percentage (0-100)",
                    ),
                    "width": types.Schema(
                        type=types.Type.NUMBER,
                        description="Width in percentage (0-100)",
                    ),
                    "height": types.Schema(
                        type=types.Type.NUMBER,
                        description="Height in percentage (0-100)",
                    ),
                },
                required=["x", "y", "width", "height"],
            ),
        )

    def suggest(self, image: SourceImage) -> RelativeRegion | None:
        """请求 Gemini 给出主体区域

        Raises:
            SuggestionError: 请求失败或返回内容无法解析
        """
        from google.genai import types

        try:
            client = self._get_client()
            response = client.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(
                        data=image.content, mime_type=image.mime_type or "image/jpeg"
                    ),
                    SUBJECT_PROMPT,
                ],
                config=self._build_config(),
            )
        except SuggestionError:
            raise
        except Exception as e:
            logger.warning(f"Gemini 区域建议请求失败 [{image.name}]: {e}")
            raise SuggestionError(f"Gemini 请求失败: {e}", image.id) from e

        return self.parse_response(getattr(response, "text", None), image.id)

    @staticmethod
    def parse_response(text: str | None, source_id: str | None = None) -> RelativeRegion | None:
        """把模型返回的 JSON 文本解析为 RelativeRegion"""
        if not text:
            return None

        try:
            payload = json.loads(text)
            return RelativeRegion(
                x=float(payload["x"]),
                y=float(payload["y"]),
                width=float(payload["width"]),
                height=float(payload["height"]),
            )
        except (ValueError, TypeError, KeyError) as e:
            raise SuggestionError(f"无法解析区域建议: {text!r}", source_id) from e
