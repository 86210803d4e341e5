"""
screenbot/utils/constants.py

Purpose: Centralized static content

- All user-facing messages (Spanish, WhatsApp markdown)
- Reserved commands
- Store key prefixes and TTLs

(Prevents hardcoding across the codebase)
"""

from screenbot.flow.states import ScreeningStep

# ============================================================
# STORE KEYS & TTLs
# ============================================================

SESSION_KEY_PREFIX = "wa:"
RATE_LIMIT_KEY_PREFIX = "rl:"
OPTOUT_KEY_PREFIX = "optout:"
START_DEDUP_KEY_PREFIX = "start_dedup:"
MESSAGE_ID_KEY_PREFIX = "msgid:"
TEMPLATE_KEY_PREFIX = "tpl:"

SESSION_TTL_SECONDS = 604_800        # 7 days
RATE_LIMIT_TTL_SECONDS = 60
OPTOUT_TTL_SECONDS = 2_592_000       # 30 days
START_DEDUP_TTL_SECONDS = 60
MESSAGE_ID_TTL_SECONDS = 300         # longer than the provider retry window
TEMPLATE_TTL_SECONDS = 31_536_000    # templates are immutable once created

# ============================================================
# COMMANDS
# ============================================================

COMMAND_PING = "PING"
COMMAND_STOP = "STOP"
COMMAND_START = "START"
COMMAND_RESTART = "RESTART"

# ============================================================
# QUESTIONS
# ============================================================

QUESTION_TEXT = {
    ScreeningStep.Q1: (
        "*Q1/8* 🧩\n"
        "En SpanishVIP buscamos un rol de *equipo* (no estilo marketplace).\n"
        "¿Buscas un rol fijo y comprometido con el equipo?\n"
        "1) ✅ Sí\n"
        "2) ❌ No"
    ),
    ScreeningStep.Q2: (
        "*Q2/8* 🗓️\n"
        "¿Cuántas horas por semana puedes comprometerte de forma constante?\n"
        "1) 💪 Tiempo completo (30+ hrs/sem)\n"
        "2) 🙂 Medio tiempo (15–29 hrs/sem)\n"
        "3) 🥲 Menos de 15 hrs/sem"
    ),
    ScreeningStep.Q3: (
        "*Q3/8* ⏱️\n"
        "¿Cuándo podrías empezar?\n"
        "1) 🚀 Inmediatamente\n"
        "2) 📆 En 1–2 semanas\n"
        "3) 🗓️ En 1 mes o más"
    ),
    ScreeningStep.Q4: (
        "*Q4/8* 💻🎧\n"
        "¿Tienes internet estable + un lugar tranquilo para enseñar?\n"
        "1) ✅ Sí\n"
        "2) ❌ No"
    ),
    ScreeningStep.Q5: (
        "*Q5/8* 📚✨\n"
        "¿Estás de acuerdo en seguir el currículum y los SOPs del equipo?\n"
        "1) ✅ Sí\n"
        "2) ❌ No"
    ),
    ScreeningStep.Q6: (
        "*Q6/8* 🇺🇸🗣️\n"
        "¿Cuál es tu nivel de inglés?\n"
        "1) ✅ Bueno\n"
        "2) 🙂 Me defiendo\n"
        "3) ❌ No sé mucho"
    ),
    ScreeningStep.Q7: (
        "*Q7/8* 🎂\n"
        "¿Cuál es tu edad?\n"
        "(Escribe solo el número, por ejemplo: 24)"
    ),
    ScreeningStep.Q8: (
        "*Q8/8* 👩‍🏫\n"
        "¿A qué tipo de estudiantes has enseñado?\n"
        "1) Niños 👧🧒\n"
        "2) Jóvenes 🎓\n"
        "3) Adultos 💼\n"
        "4) Todos los anteriores 🌟"
    ),
}

# Sent together with the question when a reply is not understood
INVALID_HINT = {
    ScreeningStep.Q1: "😊 Responde solo con 1 o 2.",
    ScreeningStep.Q2: "😊 Responde solo con 1, 2 o 3.",
    ScreeningStep.Q3: "😊 Responde solo con 1, 2 o 3.",
    ScreeningStep.Q4: "😊 Responde solo con 1 o 2.",
    ScreeningStep.Q5: "😊 Responde solo con 1 o 2.",
    ScreeningStep.Q6: "😊 Responde solo con 1, 2 o 3.",
    ScreeningStep.Q7: "😊 Por favor escribe tu edad en números (ej: 24).",
    ScreeningStep.Q8: "😊 Responde solo con 1, 2, 3 o 4.",
}

if set(QUESTION_TEXT) != set(ScreeningStep) or set(INVALID_HINT) != set(ScreeningStep):
    raise RuntimeError("Every ScreeningStep needs a question and a hint")

# ============================================================
# OUTCOMES
# ============================================================

FAIL_MESSAGES = {
    ScreeningStep.Q1: (
        "📛 Gracias por tu sinceridad.\n"
        "En este momento estamos buscando *miembros de equipo* con compromiso y disponibilidad constante.\n\n"
        "🙏 Te deseamos lo mejor y gracias por postularte."
    ),
    ScreeningStep.Q2: (
        "📛 ¡Gracias!\n"
        "Por ahora necesitamos mínimo *{min_weekly_hours} horas/semana* de disponibilidad constante.\n\n"
        "🙏 Te agradecemos tu tiempo y tu interés en SpanishVIP."
    ),
    ScreeningStep.Q4: (
        "📛 Gracias por tu respuesta.\n"
        "Para poder dar clases con calidad, necesitamos *internet estable* y un *espacio tranquilo*.\n\n"
        "🙏 Te agradecemos tu tiempo."
    ),
    ScreeningStep.Q5: (
        "📛 Gracias por tu sinceridad.\n"
        "Para este rol es importante seguir nuestro sistema y procesos.\n\n"
        "🙏 Te deseamos lo mejor y gracias por postularte."
    ),
    ScreeningStep.Q6: (
        "📛 ¡Gracias!\n"
        "Por ahora necesitamos al menos un nivel de inglés para comunicarnos en el equipo "
        "(aunque sea _\"me defiendo\"_).\n\n"
        "🙏 Te agradecemos tu tiempo y tu interés en SpanishVIP."
    ),
    ScreeningStep.Q7: (
        "📛 ¡Gracias!\n"
        "En este momento estamos buscando candidatos *menores de {age_cutoff} años* para este rol.\n\n"
        "🙏 Te agradecemos tu tiempo y tu interés en SpanishVIP."
    ),
}

GENERIC_FAIL_MESSAGE = (
    "📛 ¡Gracias por tu tiempo!\n"
    "En este momento tu perfil no coincide con lo que buscamos.\n\n"
    "🙏 Te deseamos lo mejor."
)

PASS_MESSAGE = (
    "🎉 *¡Excelente! Has pasado el pre-filtro* ✅\n\n"
    "🧑‍💼 Siguiente paso: hablar con una persona del equipo para coordinar tu *primera entrevista*.\n\n"
    "👉 Escribe aquí a *Maria Camila* para continuar:\n"
    "{handoff_link}\n\n"
    "💬 _Mensaje sugerido:_\n"
    "\"Hola Maria, pasé el pre-filtro de SpanishVIP. Mi nombre es ___ y mi correo es ___.\""
)

# ============================================================
# SYSTEM MESSAGES
# ============================================================

PONG_MESSAGE = "pong"
OPT_OUT_CONFIRMATION = "Listo ✅ No te escribiremos más por aquí. Si quieres volver, escribe START."
ALREADY_STARTED_MESSAGE = "Ya iniciamos ✅ Responde con 1/2 según la pregunta."
RATE_LIMITED_MESSAGE = "Estás enviando mensajes demasiado rápido. Por favor, espera un momento."
NO_SESSION_MESSAGE = "Escribe START para comenzar 😊"
GENERIC_ERROR_MESSAGE = "Lo sentimos, algo salió mal. Por favor, escribe *RESTART* para empezar de nuevo."
