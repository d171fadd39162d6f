import html
from datetime import date

from app.schedule.models import Event, Promo

class ParseMode:
    HTML = "HTML"

GRADED_MARK = "(Devoir Noté)"


def _event_block(event: Event) -> str:
    block_lines: list[str] = []
    block_lines.append(f"🕘 <b>{event.start.strftime('%H:%M')} - {event.end.strftime('%H:%M')}</b>")

    lesson = html.escape(event.lesson or event.summary)
    if event.is_graded:
        lesson = f"{lesson} {GRADED_MARK}"
    block_lines.append(f"Matière: {lesson}")
    block_lines.append(f"Type: {event.event_type.value}")

    if event.location:
        block_lines.append(f"Salle: {html.escape(event.location)}")
    if event.teacher:
        block_lines.append(f"Enseignant: {html.escape(event.teacher)}")

    return "\n".join(block_lines)


def build_empty_message(promo: Promo, target_date: date) -> str:
    return f"Pas de cours pour {promo} le {target_date.strftime('%d/%m/%Y')} 🎉"


def build_day_message(promo: Promo, target_date: date, events: list[Event]) -> str:
    """
    Builds the timetable message for one group and one day.
    Format example (Telegram render):
    📅 Emploi du temps: 3-INFO-21
    18/10/2026

    🕘 08:00 - 10:00
    Matière: Développement web
    Type: TD
    Salle: B204
    Enseignant: M. Dupont
    """
    if not events:
        return build_empty_message(promo, target_date)

    header = f"📅 <b>Emploi du temps: {promo}</b>\n{target_date.strftime('%d/%m/%Y')}"
    body = "\n\n".join(_event_block(event) for event in events)
    return (header + "\n\n" + body).strip()


def split_telegram(text: str, limit: int = 4096) -> list[str]:
    """
    Splits text into chunks of at most `limit` characters,
    preferring to split at line breaks.
    """
    if len(text) <= limit:
        return [text]

    chunks = []
    current_chunk = ""

    for line in text.splitlines(keepends=True):
        if len(current_chunk) + len(line) > limit:
            if current_chunk:
                chunks.append(current_chunk)
                current_chunk = ""

            # A single line longer than the limit is hard split.
            while len(line) > limit:
                chunks.append(line[:limit])
                line = line[limit:]
            current_chunk = line
        else:
            current_chunk += line

    if current_chunk:
        chunks.append(current_chunk)

    return chunks
