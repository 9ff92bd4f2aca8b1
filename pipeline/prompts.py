"""Prompt construction for transcript analysis."""

from __future__ import annotations

EXTRACTION_TEMPLATE = """Analyze the following patient-doctor conversation transcript and extract key medical information in JSON format.

IMPORTANT: For symptoms, currentMedications and allergies, provide each item as a separate element in the array, not as a comma-separated string.

Use exactly these field names and value types:
{{
  "diagnosis": "primary diagnosis or suspected condition",
  "symptoms": ["symptom 1", "symptom 2", "symptom 3"],
  "severity": "mild, moderate or severe",
  "duration": "how long symptoms have been present",
  "patientAge": 42,
  "patientGender": "male, female or other",
  "currentMedications": ["medication 1", "medication 2"],
  "medicalHistory": "relevant medical history",
  "familyHistory": "relevant family history",
  "allergies": ["allergy 1"],
  "treatmentPlan": "treatment plan if mentioned",
  "vitalSigns": {{
    "bloodPressure": "120/80",
    "heartRate": 72,
    "temperature": 98.6,
    "weight": 150
  }}
}}

"patientAge" must be a whole number. Omit any field other than "diagnosis" and "symptoms" that the transcript does not mention; use an empty array when no symptoms are described.

Transcript: {transcript}

Please provide only the JSON response, no additional text."""


def build_extraction_prompt(transcript: str) -> str:
    """Return the instruction asking the model to emit a patient record as JSON."""

    return EXTRACTION_TEMPLATE.format(transcript=transcript)
