from pydantic import BaseModel
from typing import List, Optional
from felka.schemas.common import ContactEmail

class ExternalPersonIn(BaseModel):
    fullName: str
    email: ContactEmail
    personType: str = "client"  # client, contractor, provider
    companyName: str = ""
    externalCompany: str = ""
    phone: str = ""
    document: str = ""
    position: str = ""
    hasSystemAccess: bool = False
    allowedModules: List[str] = []
    accessLevel: str = "basic"
    status: str = "active"

class ExternalPersonPatch(BaseModel):
    fullName: Optional[str] = None
    email: Optional[ContactEmail] = None
    personType: Optional[str] = None
    companyName: Optional[str] = None
    externalCompany: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None
    position: Optional[str] = None
    hasSystemAccess: Optional[bool] = None
    allowedModules: Optional[List[str]] = None
    accessLevel: Optional[str] = None

class ExternalPersonStatusIn(BaseModel):
    status: str

class ExternalPersonOut(BaseModel):
    id: str
    fullName: str
    email: str
    personType: str
    companyName: str = ""
    externalCompany: str = ""
    phone: str = ""
    document: str = ""
    position: str = ""
    hasSystemAccess: bool = False
    allowedModules: List[str] = []
    accessLevel: str = "basic"
    status: str
    visitCount: int = 0
    lastVisitAt: Optional[str] = None
    createdAt: str
