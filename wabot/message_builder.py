"""
Message Builder for WhatsApp bot replies.

Builds the reply texts the bot sends, with consistent wording. Replies
are in French, like the commands themselves (salut, aide).
"""

from datetime import datetime
from typing import Iterable, Optional


class MessageBuilder:
    """
    Build reply messages for the WhatsApp bot.

    Static texts are class attributes; anything that depends on the
    message or the bot state has a builder method.
    """

    HELP_MESSAGE = (
        "Commandes disponibles :\n"
        "- ping: Test latence\n"
        "- salut: Greeting personnalisé\n"
        "- channel: Lien de mon channel WhatsApp\n"
        "- uptime: Temps en ligne\n"
        "- weather [ville]: Météo (simulation)\n"
        "- quote: Citation random\n"
        "- joke: Blague random\n"
        "- fact: Fait random\n"
        "- info: Infos sur le bot\n"
        "- stats: Statistiques\n"
        "- calc [expression]: Calculatrice\n"
        "- echo [texte]: Répète ton texte\n"
        "- roll [max]: Nombre aléatoire\n"
        "- coin: Pile ou face\n"
        "- time: Heure actuelle\n"
        "- broadcast [message]: (Admin only) Envoyer à tous"
    )

    UNKNOWN_COMMAND_MESSAGE = 'Commande inconnue. Essaie "aide".'
    RATE_LIMITED_MESSAGE = "Doucement ! Trop de messages, attends une minute. ⏳"
    ADMIN_ONLY_MESSAGE = "Commande admin only."
    ECHO_PLACEHOLDER = "Tu n'as rien dit ! Essaie : echo [texte]"
    DEFAULT_DISPLAY_NAME = "utilisateur"
    DEFAULT_CITY = "Paris"
    COIN_SIDES = ("Pile 🪙", "Face 🪙")

    TIME_FORMAT = "%d/%m/%Y %H:%M:%S"

    @staticmethod
    def ping(latency_ms: int) -> str:
        return f"Pong ! 🏓 Latence: {latency_ms}ms"

    @classmethod
    def greeting(cls, display_name: Optional[str]) -> str:
        user = display_name or cls.DEFAULT_DISPLAY_NAME
        return f"Bonjour {user} ! Comment ça va ? 😊"

    @staticmethod
    def channel(link: str) -> str:
        return f"Rejoins mon channel WhatsApp : {link}"

    @staticmethod
    def format_duration(seconds: float) -> str:
        """Format a duration as 'Dd Hh Mm Ss'."""
        total = max(0, int(seconds))
        days, rem = divmod(total, 86400)
        hours, rem = divmod(rem, 3600)
        minutes, secs = divmod(rem, 60)
        return f"{days}d {hours}h {minutes}m {secs}s"

    @classmethod
    def uptime(cls, seconds: float) -> str:
        return f"Bot en ligne depuis {cls.format_duration(seconds)}."

    @staticmethod
    def weather(city: str) -> str:
        return f"Météo à {city} : Ensoleillé, 20°C (simulation)."

    @staticmethod
    def broadcast_sent(text: str) -> str:
        return f"Broadcast envoyé : {text} (implémentation simulation)."

    @classmethod
    def info(cls, version: str, admin_jid: str, started_at: datetime) -> str:
        return (
            "🤖 Infos du bot\n"
            f"Version : {version}\n"
            f"Admin : {admin_jid}\n"
            f"Démarré le : {started_at.strftime(cls.TIME_FORMAT)}"
        )

    @classmethod
    def stats(cls, users: int, uptime_seconds: float) -> str:
        return (
            "📊 Statistiques\n"
            f"Utilisateurs : {users}\n"
            f"Uptime : {cls.format_duration(uptime_seconds)}"
        )

    @staticmethod
    def calc_result(expression: str, result: str) -> str:
        return f"🧮 {expression} = {result}"

    @staticmethod
    def calc_error(reason: str) -> str:
        return f"Erreur de calcul : {reason}"

    @staticmethod
    def roll(value: int, maximum: int) -> str:
        return f"🎲 Tu as obtenu {value} (1-{maximum})"

    @classmethod
    def current_time(cls, now: datetime) -> str:
        return f"🕒 Il est {now.strftime(cls.TIME_FORMAT)}"

    @staticmethod
    def command_list(keywords: Iterable[str]) -> str:
        """Comma-separated keyword list, used in logs and the dashboard."""
        return ", ".join(sorted(keywords))

    # Dashboard texts

    INVALID_NUMBER_MESSAGE = "Numéro invalide."
    PAIRING_ERROR_MESSAGE = "Erreur. Réessaie."
    NO_PAIRING_CODE = "aucun code"
