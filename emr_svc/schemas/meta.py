"""
Response schema for the public enumeration endpoint used to populate
dropdowns in the client.
"""
from typing import List

from pydantic import BaseModel


class MetaOptionsResponse(BaseModel):
    patient_statuses: List[str]
    genders: List[str]
    user_statuses: List[str]
    staff_statuses: List[str]
    departments: List[str]
    employment_statuses: List[str]
    time_off_reasons: List[str]
    appointment_types: List[str]
    appointment_statuses: List[str]
    task_statuses: List[str]
    task_priorities: List[str]
    clinic_types: List[str]
    user_location_statuses: List[str]
    form_field_types: List[str]
    slot_durations: List[int]
    weekdays: List[str]
