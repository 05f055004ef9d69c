"""Prompt text handed to the downstream language model by the HTTP layer.

The engine never calls the model; it only renders the grounded context.
"""
from __future__ import annotations

from phucloi_agent.common.utils import json_dumps_canonical
from phucloi_agent.query.types import QueryOutcome

SYSTEM_PROMPT = """Bạn là trợ lý AI của Công ty TNHH Phúc Lợi, nhà phân phối xi măng rời tại Hải Phòng.

Quy tắc:
1. Luôn trả lời bằng tiếng Việt, ngắn gọn (3-5 câu), dạng gạch đầu dòng nếu có nhiều mục.
2. CHỈ dùng số liệu trong phần "Dữ liệu". Không ước lượng, không bịa số.
3. Nếu "is_empty" là true, nói rõ là không có dữ liệu phù hợp.
4. Nếu có "Ghi chú", nêu lại ghi chú đó cho người dùng (giả định, dữ liệu bất thường, tên không xác định).
5. Số tiền định dạng 1.234.567 đ; số lượng kèm đơn vị "tấn".
"""

CLARIFICATION_HINT = (
    "Hệ thống chưa hỗ trợ câu hỏi này. Bạn có thể hỏi:\n"
    "- Ai đang nợ tôi nhiều nhất?\n"
    "- Tháng này bán được bao nhiêu tấn?\n"
    "- Khách hàng nào nợ quá 90 ngày?\n"
    "- So sánh doanh thu tháng này với tháng trước\n"
    "- Còn bao nhiêu xi măng PCB40 trong kho?\n"
    "- Mình đang nợ nhà máy nào nhiều nhất?"
)


def render_user_message(question: str, outcome: QueryOutcome, context_text: str | None = None) -> str:
    """User turn: the question followed by the canonical data context."""
    if outcome.data is None:
        return f"{question}\n\nKhông có dữ liệu. {CLARIFICATION_HINT}"
    parts = [question, "", "Dữ liệu:", context_text or json_dumps_canonical(outcome.data)]
    if outcome.note:
        parts += ["", f"Ghi chú: {outcome.note}"]
    parts += ["", "Trả lời ngắn gọn (3-5 câu)."]
    return "\n".join(parts)
