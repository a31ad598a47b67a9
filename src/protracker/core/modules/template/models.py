"""Step templates used to seed new projects."""

from pydantic import AliasChoices, Field

from protracker.core.db import DocumentModel
from protracker.errors import ValidationError


class StepTemplateEntry(DocumentModel):
    """One workflow step definition: title plus default checklist texts."""

    id: int | str
    title: str
    default_checklist: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("defaultChecklist", "defaultChecklistTexts", "default_checklist"),
    )


DEFAULT_STEPS_TEMPLATE: list[StepTemplateEntry] = [
    StepTemplateEntry(
        id=1,
        title="สำรวจความต้องการ",
        default_checklist=[
            "ระบุรายการสินค้า/งานจ้างที่ต้องการ",
            "ระบุจำนวนและหน่วยนับ",
            "กำหนดคุณลักษณะเฉพาะ (Spec) เบื้องต้น",
            "ระบุหน่วยงานผู้ขอซื้อ/ขอจ้าง",
            "กำหนดวันที่ต้องการใช้งาน",
        ],
    ),
    StepTemplateEntry(
        id=2,
        title="จัดทำรายละเอียด/TOR",
        default_checklist=[
            "จัดทำร่างขอบเขตของงาน (TOR)",
            "กำหนดคุณสมบัติผู้เสนอราคา",
            "กำหนดเงื่อนไขการส่งมอบงาน",
            "กำหนดงวดงานและการจ่ายเงิน (ถ้ามี)",
            "ผู้มีอำนาจลงนามอนุมัติ TOR",
        ],
    ),
    StepTemplateEntry(
        id=3,
        title="ประมาณราคากลาง",
        default_checklist=[
            "สืบราคาจากท้องตลาด (อย่างน้อย 3 ราย)",
            "จัดทำตารางเปรียบเทียบราคา",
            "คำนวณราคากลางตามหลักเกณฑ์",
            "จัดทำรายงานขออนุมัติราคากลาง",
        ],
    ),
    StepTemplateEntry(
        id=4,
        title="ขออนุมัติจัดซื้อ/จัดจ้าง",
        default_checklist=[
            "จัดทำบันทึกข้อความขออนุมัติ",
            "แนบเอกสารรายละเอียด/TOR",
            "แนบเอกสารราคากลาง",
            "เสนอหัวหน้าเจ้าหน้าที่พัสดุ",
            "เสนอผู้มีอำนาจอนุมัติ (ตามวงเงิน)",
        ],
    ),
    StepTemplateEntry(
        id=5,
        title="ดำเนินการจัดซื้อ/จัดจ้าง",
        default_checklist=[
            "ประกาศเชิญชวน/ส่งหนังสือเชิญ",
            "รับซองข้อเสนอ/ใบเสนอราคา",
            "คณะกรรมการพิจารณาผล",
            "ประกาศผู้ชนะการเสนอราคา",
            "จัดทำสัญญาหรือใบสั่งซื้อ/สั่งจ้าง (PO)",
        ],
    ),
    StepTemplateEntry(
        id=6,
        title="ตรวจรับพัสดุ/งานจ้าง",
        default_checklist=[
            "ผู้ขาย/ผู้รับจ้างส่งมอบงาน",
            "คณะกรรมการตรวจรับตรวจสอบความถูกต้อง",
            "จัดทำใบตรวจรับพัสดุ/งานจ้าง",
            "บันทึกรับพัสดุเข้าคลัง (ถ้ามี)",
        ],
    ),
    StepTemplateEntry(
        id=7,
        title="เบิกจ่ายเงิน",
        default_checklist=[
            "รวบรวมเอกสารส่งมอบและตรวจรับทั้งหมด",
            "จัดทำเอกสารขอเบิกเงิน",
            "ส่งฝ่ายการเงิน/บัญชี",
            "ติดตามผลการโอนเงินให้ผู้ขาย",
            "เก็บเอกสารเข้าแฟ้มโครงการ",
        ],
    ),
]


def default_template() -> list[StepTemplateEntry]:
    """Fresh copy of the built-in template, safe to edit."""
    return [entry.model_copy(deep=True) for entry in DEFAULT_STEPS_TEMPLATE]


def normalize_template(entries: list[StepTemplateEntry]) -> list[StepTemplateEntry]:
    """Validate an edited template and strip blank checklist lines."""
    if not entries:
        raise ValidationError("Step template must contain at least one step")

    ids = [str(entry.id) for entry in entries]
    if len(set(ids)) != len(ids):
        raise ValidationError("Step ids must be unique")

    normalized = []
    for index, entry in enumerate(entries):
        title = entry.title.strip()
        if not title:
            raise ValidationError(f"Step {index + 1} must have a title")
        checklist = [text.strip() for text in entry.default_checklist if text.strip()]
        normalized.append(StepTemplateEntry(id=entry.id, title=title, default_checklist=checklist))
    return normalized
