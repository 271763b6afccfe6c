import qrcode
from io import BytesIO
import base64
from django.conf import settings


def generate_qr_payload(student_id):
	"""Text encoded in a student's QR code"""
	return f"{settings.MESS_CONFIG['qr_payload_prefix']}{student_id}"


def generate_qr_image(payload, box_size=None):
	"""Generate QR code image from payload as base64 PNG"""
	qr = qrcode.QRCode(
		version=1,
		error_correction=qrcode.constants.ERROR_CORRECT_L,
		box_size=box_size or settings.MESS_CONFIG['qr_box_size'],
		border=4,
	)
	qr.add_data(payload)
	qr.make(fit=True)

	img = qr.make_image(fill_color="black", back_color="white")

	# Convert to base64 for easy transmission
	buffer = BytesIO()
	img.save(buffer, format='PNG')
	buffer.seek(0)

	img_base64 = base64.b64encode(buffer.getvalue()).decode()
	return img_base64
