"""
Text-recognition collaborator interface.
"""
from typing import List, Protocol, Sequence, Tuple

from PIL import Image

Point = Sequence[float]
TextBox = Tuple[Sequence[Point], str]  # (polygon, text)


class TextRecognizer(Protocol):
    """
    Reads raw text from an image.

    `recognize` may raise; the processor treats any failure as empty text for
    that variant. Engines that cannot be called from several threads at once
    set `reentrant = False` and the processor serializes calls through them.
    """

    name: str
    reentrant: bool

    def recognize(self, image: Image.Image) -> str:
        ...


def join_text_boxes(boxes: List[TextBox]) -> str:
    """
    Rebuild multi-line text from detected word/line boxes.

    Boxes whose vertical centers fall within half a box height of the current
    line are joined left to right with spaces; lines are joined with newlines.
    """
    items = []
    for polygon, text in boxes:
        text = (text or "").strip()
        if not text:
            continue
        xs = [float(p[0]) for p in polygon]
        ys = [float(p[1]) for p in polygon]
        items.append((min(xs), (min(ys) + max(ys)) / 2, max(ys) - min(ys), text))

    items.sort(key=lambda it: (it[1], it[0]))

    lines: List[List[tuple]] = []
    for item in items:
        if lines:
            current = lines[-1]
            ref_center = sum(i[1] for i in current) / len(current)
            ref_height = max(i[2] for i in current)
            if abs(item[1] - ref_center) <= max(ref_height, item[2]) / 2:
                current.append(item)
                continue
        lines.append([item])

    return "\n".join(" ".join(i[3] for i in sorted(line, key=lambda i: i[0])) for line in lines)
