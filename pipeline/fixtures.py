"""Canned data served when upstream services are unavailable."""

from __future__ import annotations

from typing import Any, Dict, List

SAMPLE_TRANSCRIPT = """Doctor: Good morning, Sarah. How are you feeling today?

Patient: Not great, Dr. Johnson. I've been having these terrible headaches for the past three weeks, and they're getting worse. They're usually in the morning and last most of the day.

Doctor: I'm sorry to hear that. Can you tell me more about the headaches? Where exactly do you feel them?

Patient: They're mostly on the right side of my head, behind my eye. Sometimes they're so bad I can't focus at work. I've also been feeling nauseous when they happen.

Doctor: Have you noticed any other symptoms? Any vision changes, sensitivity to light or sound?

Patient: Yes, actually. Bright lights really bother me during the headaches, and loud noises make them worse. I've also been having trouble sleeping because of the pain.

Doctor: How old are you, Sarah?

Patient: I'm 42.

Doctor: And do you have any family history of migraines or other neurological conditions?

Patient: My mother had migraines, and my sister gets them too. They both started around the same age I am now.

Doctor: I see. Have you tried any over-the-counter medications?

Patient: I've tried Tylenol and Advil, but they don't seem to help much. The pain just keeps coming back.

Doctor: Based on what you're describing, this sounds like classic migraine symptoms. The fact that they're unilateral, associated with nausea and light sensitivity, and have a family history all point to migraines. Let me prescribe you a medication specifically for migraines, and I'd also like to discuss some preventive strategies."""


FALLBACK_PATIENT_RECORD: Dict[str, Any] = {
    "diagnosis": "Migraine",
    "symptoms": ["Headache", "Nausea", "Light sensitivity", "Sound sensitivity"],
    "patientAge": 42,
    "patientGender": "Female",
    "medicalHistory": "No significant medical history",
    "currentMedications": ["Tylenol", "Advil"],
    "treatmentPlan": "Prescription migraine medication and preventive strategies",
    "severity": "moderate",
    "duration": "3 weeks",
    "familyHistory": "Mother and sister have migraines",
}


FALLBACK_TRIALS: List[Dict[str, str]] = [
    {
        "nctId": "NCT12345678",
        "title": "Efficacy and Safety of New Migraine Treatment Lorem Ipsum",
        "condition": "Migraine",
        "intervention": "Oral medication",
        "phase": "Phase 2",
        "status": "Recruiting",
        "sponsor": "PharmaCorp Inc.",
        "country": "United States",
        "enrollment": "150",
        "startDate": "2024-01-15",
        "completionDate": "2025-01-15",
        "description": "A randomized, double-blind study to evaluate the efficacy and safety of a new migraine treatment in adults.",
        "studyType": "Interventional",
    },
    {
        "nctId": "NCT87654321",
        "title": "Preventive Treatment for Chronic Migraine",
        "condition": "Chronic Migraine",
        "intervention": "Injectable medication",
        "phase": "Phase 3",
        "status": "Active, not recruiting",
        "sponsor": "NeuroMed Solutions",
        "country": "United States",
        "enrollment": "300",
        "startDate": "2023-06-01",
        "completionDate": "2024-12-31",
        "description": "Study to evaluate the effectiveness of preventive treatment in reducing migraine frequency and severity.",
        "studyType": "Interventional",
    },
    {
        "nctId": "NCT11223344",
        "title": "Non-Pharmacological Treatment for Migraine",
        "condition": "Migraine",
        "intervention": "Behavioral therapy",
        "phase": "Phase 1",
        "status": "Recruiting",
        "sponsor": "MindBody Institute",
        "country": "United States",
        "enrollment": "75",
        "startDate": "2024-03-01",
        "completionDate": "2025-03-01",
        "description": "Evaluation of cognitive behavioral therapy and relaxation techniques for migraine management.",
        "studyType": "Interventional",
    },
    {
        "nctId": "NCT99887766",
        "title": "Advanced Imaging in Migraine Research",
        "condition": "Migraine with Aura",
        "intervention": "Diagnostic imaging",
        "phase": "Phase 1",
        "status": "Recruiting",
        "sponsor": "NeuroImaging Research Center",
        "country": "United States",
        "enrollment": "50",
        "startDate": "2024-02-01",
        "completionDate": "2025-02-01",
        "description": "Study using advanced MRI techniques to understand brain changes during migraine attacks.",
        "studyType": "Observational",
    },
    {
        "nctId": "NCT55443322",
        "title": "Dietary Interventions for Migraine Prevention",
        "condition": "Migraine",
        "intervention": "Dietary modification",
        "phase": "Phase 2",
        "status": "Recruiting",
        "sponsor": "Nutritional Health Institute",
        "country": "United States",
        "enrollment": "200",
        "startDate": "2024-04-01",
        "completionDate": "2025-10-01",
        "description": "Randomized controlled trial evaluating the effectiveness of specific dietary changes in reducing migraine frequency.",
        "studyType": "Interventional",
    },
]
