"""Pydantic models for request payloads and workflow rows."""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    return bool(value)


class RequirementForm(BaseModel):
    """Post Requirement form payload.

    Attribute names are the requirement table's columns; aliases are the
    form's field names. Empty strings are stored as NULL.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    requirement_name: Optional[str] = Field(None, alias="jobTitle")
    client_name: Optional[str] = Field(None, alias="clientName")
    requirement_received_date: Optional[str] = Field(None, alias="requirementReceivedDate")
    due_date: Optional[str] = Field(None, alias="dueDate")
    lead_ref_number: Optional[str] = Field(None, alias="leadRefNumber")
    date_of_allocation: Optional[str] = Field(None, alias="dateOfAllocation")
    team_leader: Optional[str] = Field(None, alias="teamLeader")
    job_location: Optional[str] = Field(None, alias="location")
    past_company: Optional[str] = Field(None, alias="pastCompany")
    type_of_position: Optional[str] = Field(None, alias="typeOfPosition")
    experince_range: Optional[str] = Field(None, alias="experienceLevel")
    relevant_exp: Optional[str] = Field(None, alias="relevantExp")
    open_no_of_position: Optional[int] = Field(None, alias="positions")
    any_qualification_criteria: Optional[str] = Field(None, alias="qualification")
    salary_bracket: Optional[str] = Field(None, alias="salaryBracket")
    shift_details: Optional[str] = Field(None, alias="shift")
    onsite_opportunity: Optional[str] = Field(None, alias="onSiteOpportunity")
    does_the_profile_invovle_travelling: Optional[str] = Field(None, alias="involveTraveling")
    specific_gender_requirement: Optional[str] = Field(None, alias="specificGenderRequirement")
    process_of_interview: Optional[str] = Field(None, alias="processOfInterview")
    requirement_open_since: Optional[str] = Field(None, alias="requirementOpenSince")
    requirement_close_date: Optional[str] = Field(None, alias="requirementCloseDate")
    if_new_project: Optional[str] = Field(None, alias="newProject")
    requirement_status: Optional[str] = Field(None, alias="requirementStatus")
    jd_received: Optional[str] = Field(None, alias="jdReceived")
    manager: Optional[str] = Field(None, alias="manager")
    mark_complete_once_all_fulfilled: Optional[str] = Field(None, alias="markCompleteOnceAllFulfilled")
    mandatory_skills: Optional[str] = Field(None, alias="skills")
    responsibilities: Optional[str] = Field(None, alias="jobDescription")
    note: Optional[str] = Field(None, alias="additionalNotes")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value, info):
        if info.field_name == "open_no_of_position":
            return value
        if value is None or value == "":
            return None
        if isinstance(value, (list, dict)):
            return json.dumps(value)
        return str(value)

    @field_validator("open_no_of_position", mode="before")
    @classmethod
    def _coerce_positions(cls, value):
        # Present but unparseable counts are stored as 0, never rejected.
        if value is None:
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    def columns(self) -> dict:
        return self.model_dump()


class CampaignOptions(BaseModel):
    model_config = ConfigDict(extra="ignore")

    linkedinPosting: bool = False
    facebookPosting: bool = False
    twitterPosting: bool = False
    linkedinScraper: bool = False
    githubScraper: bool = False
    linkedinMessaging: bool = False

    @field_validator("*", mode="before")
    @classmethod
    def _loose_bool(cls, value):
        return truthy(value)

    def any_selected(self) -> bool:
        return any(self.model_dump().values())

    def any_posting(self) -> bool:
        return self.linkedinPosting or self.facebookPosting or self.twitterPosting


class WorkflowEntry(BaseModel):
    """One workflow_registry row as written at campaign creation."""

    workflow_name: str
    connector_name: str
    webhook_url: str
    params: Optional[str] = None
    depth_limit: int = 2
    interval_minutes: int = 1440
    next_run_at: Optional[datetime] = None
    last_executed_at: Optional[datetime] = None
    is_active: bool = True
    priority: int = 5
    retry_count: int = 0
