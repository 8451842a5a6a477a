import pytest

from chat_gateway.functions import LocalFunction, LocalFunctionParameter


@pytest.fixture
def weather_calls():
    """Locations passed to the weather tool, in call order."""
    return []


@pytest.fixture
def weather_function(weather_calls):
    def get_current_weather(location):
        weather_calls.append(location)
        return f"Weather in {location}: sunny, 24°C"

    return LocalFunction(
        "get_current_weather",
        "Returns the current weather for a location",
        [LocalFunctionParameter("location", "City or zip code")],
        get_current_weather,
    )
