import logging
import re
import secrets
import smtplib
from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field

import config
import database
import mailer
from auth import authorize, create_token, hash_password, verify_password
from schemas import MOBILE_PATTERN, Address, IdBody, PageBody, Role
from schemas import Profile as ProfileSchema, User as UserSchema
from utils import fetch_or_404, page_info, public_user, serialize_doc, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


# ----------------------- Models -----------------------
class RegisterBody(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    mobile: str = Field(..., pattern=MOBILE_PATTERN)
    password: str = Field(..., min_length=6)


class LoginBody(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordBody(BaseModel):
    email: EmailStr


class ResetPasswordBody(BaseModel):
    email: EmailStr
    otp: str
    new_password: str = Field(..., min_length=6)


class UserUpdateFields(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    mobile: Optional[str] = Field(None, pattern=MOBILE_PATTERN)
    role: Optional[Role] = None


class UserUpdateBody(BaseModel):
    id: str
    update: UserUpdateFields


class ProfileBody(BaseModel):
    user_id: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    date_of_birth: Optional[datetime] = None
    addresses: Optional[List[Address]] = None
    bio: Optional[str] = None


def _ensure_unique(email: Optional[str], mobile: Optional[str], exclude_id=None):
    clauses = []
    if email:
        clauses.append({"email": email})
    if mobile:
        clauses.append({"mobile": mobile})
    if not clauses:
        return
    filt = {"$or": clauses}
    if exclude_id is not None:
        filt["_id"] = {"$ne": exclude_id}
    if database.collection("user").find_one(filt):
        raise HTTPException(status_code=400, detail="User already exists")


def _generate_otp() -> str:
    return str(secrets.randbelow(900000) + 100000)


# ----------------------- Auth -----------------------
@router.post("/create")
def create_user(body: RegisterBody):
    email = body.email.lower()
    _ensure_unique(email, body.mobile)
    user = UserSchema(
        name=body.name.strip(),
        email=email,
        mobile=body.mobile,
        password_hash=hash_password(body.password),
        role="customer",
    )
    with database.transaction() as session:
        user_id = database.users.insert(user, session=session)
        profile = ProfileSchema(user=user_id, name=user.name, email=email, role=user.role, phone=user.mobile)
        try:
            database.create_document("profile", profile, session=session)
        except Exception:
            # without a transaction the user insert has to be undone by hand
            if session is None:
                database.collection("user").delete_one({"_id": user_id})
            raise
    created = database.users.get(user_id)
    logger.info(f"New user registered with ID: {user_id} and email: {email}")
    return success_response("User created successfully", {"user": public_user(created), "token": create_token(created)})


@router.post("/login")
def login(body: LoginBody):
    user = database.users.find_one({"email": body.email.lower()})
    if not user:
        logger.warning(f"Auth failed: No active user for email {body.email}")
        raise HTTPException(status_code=401, detail="User not found")
    if not verify_password(body.password, user.get("password_hash", "")):
        logger.warning(f"Auth failed: Incorrect password for email {body.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return success_response("Login successful", {"token": create_token(user), "user": public_user(user)})


@router.post("/forget-password")
def forgot_password(body: ForgotPasswordBody):
    email = body.email.lower()
    user = database.users.find_one({"email": email})
    if not user:
        logger.warning(f"Password reset requested for unknown email {email}")
        return success_response("OTP sent to email")

    otp = _generate_otp()
    expires = database.utcnow() + timedelta(minutes=config.OTP_TTL_MINUTES)
    database.users.update(user["_id"], {"reset_otp": otp, "reset_otp_expire": expires})
    try:
        mailer.send_reset_otp(email, otp)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send OTP to {email}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send OTP")
    return success_response("OTP sent to email")


@router.post("/reset-password")
def reset_password(body: ResetPasswordBody):
    user = database.users.find_one({"email": body.email.lower()})
    stored_otp = user.get("reset_otp") if user else None
    expires = user.get("reset_otp_expire") if user else None
    if expires is not None and expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    if (
        not stored_otp
        or not secrets.compare_digest(stored_otp.encode(), body.otp.encode())
        or expires is None
        or expires <= database.utcnow()
    ):
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")

    database.users.update(
        user["_id"],
        {"password_hash": hash_password(body.new_password), "reset_otp": None, "reset_otp_expire": None},
    )
    logger.info(f"Password reset for user {user['_id']}")
    return success_response("Password reset successful")


# ----------------------- Admin -----------------------
@router.post("/update")
def update_user(body: UserUpdateBody, admin=Depends(authorize("user", "update"))):
    oid = to_object_id(body.id)
    fetch_or_404(database.users, oid, "User", include_deleted=True)
    fields = body.update.model_dump(exclude_none=True)
    if "email" in fields:
        fields["email"] = fields["email"].lower()
    _ensure_unique(fields.get("email"), fields.get("mobile"), exclude_id=oid)

    if fields:
        database.users.update(oid, fields)
        profile_fields = {k: v for k, v in fields.items() if k in ("name", "email", "role")}
        if "mobile" in fields:
            profile_fields["phone"] = fields["mobile"]
        if profile_fields:
            database.collection("profile").update_one({"user": oid}, {"$set": profile_fields})
        logger.info(f"Admin {admin['_id']} updated user {oid}: {sorted(fields)}")
    return success_response("User updated successfully", public_user(database.users.get(oid, include_deleted=True)))


@router.post("/delete")
def delete_user(body: IdBody, admin=Depends(authorize("user", "delete"))):
    oid = to_object_id(body.id)
    user = fetch_or_404(database.users, oid, "User")
    database.users.soft_delete(oid, admin["_id"])
    return success_response(f"User soft deleted: {user['name']}")


@router.post("/restore")
def restore_user(body: IdBody, admin=Depends(authorize("user", "restore"))):
    oid = to_object_id(body.id)
    if not database.users.restore(oid):
        raise HTTPException(status_code=404, detail="User not found")
    return success_response("User restored successfully")


def _list_users(body: PageBody, deleted: bool):
    filt = {}
    if body.search.strip():
        pattern = re.escape(body.search.strip())
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]
    docs, total = database.users.paginate(filt, body.page, body.size, deleted=deleted)
    return [public_user(d) for d in docs], page_info(body.page, body.size, total)


@router.post("/list")
def list_users(body: Optional[PageBody] = None, user=Depends(authorize("user", "list"))):
    body = body or PageBody()
    data, pagination = _list_users(body, deleted=False)
    return success_response("Fetched successfully", data, pagination)


@router.post("/list/deleted")
def list_deleted_users(body: Optional[PageBody] = None, admin=Depends(authorize("user", "list_deleted"))):
    body = body or PageBody()
    data, pagination = _list_users(body, deleted=True)
    return success_response("Fetched deleted users", data, pagination)


# ----------------------- Profile -----------------------
@router.post("/profile")
def get_or_update_profile(body: Optional[ProfileBody] = None, user=Depends(authorize("profile", "manage"))):
    body = body or ProfileBody()
    target_id = user["_id"]
    if body.user_id:
        requested = to_object_id(body.user_id, "user_id")
        if requested != user["_id"] and user.get("role") != "admin":
            raise HTTPException(status_code=403, detail="Access denied")
        target_id = requested

    profiles = database.collection("profile")
    updates = body.model_dump(exclude_none=True, exclude={"user_id"})

    if not updates:
        profile = profiles.find_one({"user": target_id})
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")
        owner = database.users.get(target_id, include_deleted=True) or {}
        profile["wishlist"] = database.get_documents("product", {"_id": {"$in": owner.get("wishlist", [])}})
        profile["orders"] = list(
            database.collection("order").find({"_id": {"$in": profile.get("orders", [])}}).sort("created_at", -1)
        )
        return success_response("Profile fetched successfully", serialize_doc(profile))

    updates["updated_at"] = database.utcnow()
    res = profiles.update_one({"user": target_id}, {"$set": updates})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Profile not found")
    if "name" in updates:
        database.users.update(target_id, {"name": updates["name"]})
    return success_response("Profile updated successfully", serialize_doc(profiles.find_one({"user": target_id})))
