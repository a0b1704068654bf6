"""活跃度"天气预报"文案。"""

from src.modules.monitors.domain.entities import ActivityLevel

_FORECASTS: dict[ActivityLevel, str] = {
    ActivityLevel.CRITICAL: (
        "🌀 TYPHOON ALERT! A category 5 weeb storm is making landfall! "
        "Extreme anime energy detected across all sectors. This is not a drill - "
        "expect maximum hype levels, server strain, and spontaneous waifu debates. "
        "All weebs advised to secure their watchlists!"
    ),
    ActivityLevel.HIGH: (
        "⛈️ STORM WARNING! A massive weeb front is moving in! "
        "Heavy anime discussions expected with a high chance of trending hashtags. "
        "Take shelter in your favorite streaming site - it's going to be a wild one!"
    ),
    ActivityLevel.MEDIUM: (
        "⛅ Partly cloudy conditions in the weeb-o-sphere. "
        "Moderate anime activity detected with occasional bursts of excitement. "
        "Good conditions for casual binge-watching. "
        "Keep an umbrella ready for surprise episode drops!"
    ),
    ActivityLevel.LOW: (
        "☀️ Clear skies across the anime landscape! "
        "A peaceful day in the weeb-o-sphere. "
        "Perfect weather for catching up on your backlog or discovering hidden gems. "
        "Enjoy the calm before the next seasonal storm!"
    ),
}


def weebcast_forecast(level: ActivityLevel, name: str | None = None) -> str:
    """返回等级对应的文案，name 非空时加上 "[name] " 前缀。"""
    forecast = _FORECASTS[level]
    if name:
        return f"[{name}] {forecast}"
    return forecast
