from pydantic import AnyUrl, BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Union

INT32_MAX = 2**31 - 1
AGE_ABSENT = -1

# wire name -> attribute name, in the order they are reported when missing
REQUIRED_FIELDS: Dict[str, str] = {
    "documentNumber": "document_number",
    "fullName": "full_name",
    "age": "age",
    "gender": "gender",
    "dateOfBirth": "date_of_birth",
}


class DependentRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date_of_birth: str = Field("", alias="dateOfBirth")
    sex: str = ""
    document_number: str = Field("", alias="documentNumber")
    full_name: str = Field("", alias="fullName")


class DocumentRecord(BaseModel):
    """One scanned document, as handed from the scanner to the host app."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date_of_birth: Optional[str] = Field(None, alias="dateOfBirth")
    coa_address: Optional[str] = Field(None, alias="coaAddress")
    province: Optional[str] = None
    district: Optional[str] = None
    village: Optional[str] = None
    document_number: Optional[str] = Field(None, alias="documentNumber")
    full_name: Optional[str] = Field(None, alias="fullName")
    fathers_name: Optional[str] = Field(None, alias="fathersName")
    age: int = Field(AGE_ABSENT, ge=AGE_ABSENT, le=INT32_MAX)  # -1 = absent
    gender: Optional[str] = None
    front_image_ref: Optional[AnyUrl] = Field(None, alias="frontImageRef")
    back_image_ref: Optional[AnyUrl] = Field(None, alias="backImageRef")
    face_image_ref: Optional[AnyUrl] = Field(None, alias="faceImageRef")
    # None = no dependents information at all (nothing is written for them)
    dependents: Optional[List[DependentRecord]] = Field(default_factory=list)
    dependents_info: Optional[str] = Field(None, alias="dependentsInfo")
    date_of_issue: Optional[str] = Field(None, alias="dateOfIssue")
    document_additional_number: Optional[str] = Field(None, alias="documentAdditionalNumber")
    date_of_expiry: Optional[str] = Field(None, alias="dateOfExpiry")

    def missing_required(self) -> List[str]:
        """Wire names of required fields that are absent."""
        missing = []
        for wire_name, attr in REQUIRED_FIELDS.items():
            value = getattr(self, attr)
            if value is None or (attr == "age" and value == AGE_ABSENT):
                missing.append(wire_name)
        return missing


class SendDataInput(BaseModel):
    """Fields accepted by the send command, keyed by their command names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date_of_birth: Optional[str] = Field(None, alias="dateOfBirth")
    coa_address: Optional[str] = Field(None, alias="CoAAddress")
    province: Optional[str] = None
    district: Optional[str] = None
    village: Optional[str] = None
    document_number: Optional[str] = Field(None, alias="documentNumber")
    full_name: Optional[str] = Field(None, alias="fullName")
    fathers_name: Optional[str] = Field(None, alias="fathersName")
    age: Optional[int] = Field(None, ge=0, le=INT32_MAX)
    gender: Optional[str] = None
    front_image: Optional[str] = Field(None, alias="frontImage")
    back_image: Optional[str] = Field(None, alias="backImage")
    face_image: Optional[str] = Field(None, alias="faceImage")
    dependents_info: Optional[Union[str, List[Any]]] = Field(None, alias="dependentsInfo")
    date_of_issue: Optional[str] = Field(None, alias="dateOfIssue")
    document_additional_number: Optional[str] = Field(None, alias="documentAdditionalNumber")
    date_of_expiry: Optional[str] = Field(None, alias="dateOfExpiry")

    def missing_required(self) -> List[str]:
        return [wire for wire, attr in REQUIRED_FIELDS.items() if getattr(self, attr) is None]


class ResultMessage(BaseModel):
    result_code: int
    extras: Dict[str, Union[str, int]] = Field(default_factory=dict)
    clip_uris: List[str] = Field(default_factory=list)


class SendOutcome(BaseModel):
    ok: bool
    message: str
    location: Optional[str] = None
