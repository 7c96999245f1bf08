# agrireach/admin/views.py
from io import BytesIO
from flask import send_file
from flask_login import current_user
from openpyxl import Workbook
from agrireach.init_db import db
from agrireach.admin.models import AdminActivityLog
from agrireach.logging_config import setup_logging

logger = setup_logging()

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def log_activity(action, target_type, target_id, details=None):
    # Caller commits
    db.session.add(AdminActivityLog(admin_id=current_user.id, action=action, target_type=target_type,
                                    target_id=target_id, details=details or {}))
    logger.info(f"Admin {current_user.id} {action} on {target_type} {target_id}.")


def export_to_xlsx(title, headers, rows, filename):
    wb = Workbook()
    ws = wb.active
    ws.title = title

    # Headers
    ws.append(headers)

    for row in rows:
        ws.append(['' if value is None else value for value in row])

    ws.append([])
    ws.append(["Total", len(rows)])

    # Save to a BytesIO object
    output = BytesIO()
    wb.save(output)
    output.seek(0)

    return send_file(output, download_name=filename, as_attachment=True, mimetype=XLSX_MIMETYPE)


def user_rows(users):
    return [[u.id, u.full_name, u.email, ', '.join(u.get_roles()), u.status, 'Yes' if u.verified else 'No',
             u.location, u.created_at.strftime('%Y-%m-%d') if u.created_at else '']
            for u in users]


def opportunity_rows(opportunities):
    return [[o.id, o.title, o.company_name, o.category, o.location, o.pay_rate, o.pay_type, o.status,
             o.applications_count, o.created_at.strftime('%Y-%m-%d') if o.created_at else '']
            for o in opportunities]


def product_rows(products):
    return [[p.id, p.title, p.seller.full_name if p.seller else '', p.category, p.price, p.unit,
             p.quantity_available, p.status, p.created_at.strftime('%Y-%m-%d') if p.created_at else '']
            for p in products]


EXPORTS = {
    'users': ('Users', ['ID', 'Name', 'Email', 'Roles', 'Status', 'Verified', 'Location', 'Joined'], user_rows),
    'opportunities': ('Opportunities', ['ID', 'Title', 'Company', 'Category', 'Location', 'Pay Rate', 'Pay Type',
                                        'Status', 'Applications', 'Posted'], opportunity_rows),
    'products': ('Products', ['ID', 'Title', 'Seller', 'Category', 'Price', 'Unit', 'Stock', 'Status', 'Listed'],
                 product_rows),
}
