"""DSPy Signatures for customer message analysis."""

from typing import Optional

import dspy


class AnalyzeCustomerMessage(dspy.Signature):
    """Classify a customer's message to a car care / tyre hotel business.
    Detect what the customer wants, which service they are interested in, how
    urgent it is, and the tone. Extract concrete entities (dates, times,
    vehicles or licence plates, services, phone numbers, e-mail addresses)
    exactly as written. Draft a short, polite reply in the customer's language."""

    message: str = dspy.InputField(desc="The customer's message text")
    intent: str = dspy.OutputField(
        desc="One of: 'booking', 'inquiry', 'complaint', 'feedback', 'support', 'general'"
    )
    service_interest: Optional[str] = dspy.OutputField(
        desc="Service the customer asks about (e.g. 'Ceramic coating', 'Polishing', "
        "'Car wash', 'Tyre change / tyre hotel', 'Paint protection film'), or None"
    )
    urgency: str = dspy.OutputField(desc="One of: 'low', 'medium', 'high'")
    sentiment: str = dspy.OutputField(desc="One of: 'positive', 'neutral', 'negative'")
    entities: str = dspy.OutputField(
        desc='JSON array of {"type": ..., "value": ..., "confidence": 0-1} where type is '
        "one of date, time, vehicle, service, location, name, phone, email"
    )
    suggested_response: Optional[str] = dspy.OutputField(
        desc="Suggested reply to send to the customer"
    )
