import os
import secrets

from flask import current_app

from .models import About, Article, Award, Faq, Portfolio, Product, Testimonial, User, db
from .utils import parse_date

# Shown on the public site when the tables are empty, and written into a fresh
# database when SEED_SAMPLE_CONTENT is on.
SAMPLE_CONTENT = {
    'products': [
        {
            'name': 'VRV / VRF SYSTEM',
            'slug': 'vrv-system',
            'category': 'Commercial Air Conditioning',
            'image_path': 'https://www.daikin.co.id/storage/product/1623136585-VRV_A.png',
            'description': 'Sistem tata udara sentral tercanggih dengan teknologi inverter variabel untuk efisiensi maksimal pada gedung bertingkat.',
            'features': ['VRT Technology', 'BACnet Integration', 'Auto-Refill'],
            'detailed_features': [
                {'name': 'VRT Technology', 'desc': 'Variable Refrigerant Temperature memastikan penghematan energi hingga 28%.'},
                {'name': 'BACnet Integration', 'desc': 'Dapat diintegrasikan dengan sistem manajemen gedung pihak ketiga.'},
            ],
            'ideal_applications': [
                {'icon': 'Building2', 'title': 'High-Rise Office', 'desc': 'Sistem sentral untuk beban panas gedung bertingkat.'},
                {'icon': 'Hospital', 'title': 'Healthcare', 'desc': 'Hygienic cooling untuk ruang steril dan bedah.'},
            ],
        },
        {
            'name': 'MODULAR CHILLER',
            'slug': 'modular-chiller',
            'category': 'Industrial Cooling Solutions',
            'image_path': 'https://www.daikin.com.sg/wp-content/uploads/2021/05/Air-Cooled-Scroll-Chiller-UAA-UAY-B-Series.png',
            'description': 'Solusi pendinginan kapasitas besar untuk fasilitas manufaktur dan pusat data dengan keandalan operasional 24/7.',
            'features': ['Modular Scalability', 'Low Noise', 'Rapid Cooling'],
        },
        {
            'name': 'VRV HOME SERIES',
            'slug': 'vrv-home',
            'category': 'Residential Air Conditioning',
            'image_path': 'https://www.daikin.co.id/storage/product/1623136625-VRV_H.png',
            'description': 'Kenyamanan hotel bintang lima di hunian Anda. Menggantikan banyak outdoor unit dengan satu sistem sentral yang elegan.',
            'features': ['Space Saving', 'Quiet Mode', 'Lifestyle Control'],
        },
        {
            'name': 'RECLAIM AIR PURIFIER',
            'slug': 'air-purifier',
            'category': 'Indoor Air Quality Solutions',
            'image_path': 'https://www.daikin.com.sg/wp-content/uploads/2021/03/MC55VMM-6-768x768.png',
            'description': 'Sistem filtrasi udara tingkat rumah sakit yang menghilangkan 99.9% virus dan partikulat halus.',
            'features': ['HEPA Filter', 'Streamer Technology', 'Active Plasma'],
        },
    ],
    'portfolios': [
        {
            'title': 'PT. Logistik Nasional',
            'slug': 'pt-logistik-nasional',
            'category': 'INDUSTRIAL',
            'location': 'Jakarta',
            'products_used': 'VRV A Series, AHU Custom',
            'image_path': 'https://images.unsplash.com/photo-1486406146926-c627a92ad1ab?auto=format&fit=crop&q=80&w=1200',
            'summary': 'Optimalisasi suhu gudang farmasi dengan kontrol kelembaban presisi.',
            'challenge': 'Gedung membutuhkan suhu konstan 18°C dengan variasi beban panas tinggi.',
            'solution': 'Instalasi Daikin VRV A Series dengan integrasi BMS.',
            'impact': 'Efisiensi biaya listrik turun 28%.',
        },
        {
            'title': 'The Ritz-Carlton Residences',
            'slug': 'ritz-carlton-residences',
            'category': 'RESIDENTIAL',
            'location': 'Jakarta Selatan',
            'products_used': 'VRV Home Series, Ducting Invisible',
            'image_path': 'https://images.unsplash.com/photo-1545324418-cc1a3fa10c00?auto=format&fit=crop&q=80&w=1200',
            'summary': 'Sistem tata udara mewah yang tidak terlihat (invisible luxury).',
            'challenge': 'Kebutuhan unit outdoor minimalis.',
            'solution': 'VRV Home Series dengan ducting tersembunyi.',
            'impact': 'Kenyamanan akustik maksimal (<25dB).',
        },
        {
            'title': 'Global Oncology Hospital',
            'slug': 'global-oncology-hospital',
            'category': 'HEALTHCARE',
            'location': 'Tangerang',
            'products_used': 'Hygienic VRV, HEPA Units',
            'image_path': 'https://images.unsplash.com/photo-1519494026892-80bbd2d6fd0d?auto=format&fit=crop&q=80&w=1200',
            'summary': 'Standardisasi udara ruang operasi dengan teknologi filtrasi tingkat tinggi.',
            'challenge': 'Sertifikasi ruang operasi kelas 10,000.',
            'solution': 'Sistem HVAC khusus dengan air change rate yang tinggi.',
            'impact': 'Zero contamination report selama 12 bulan pertama.',
        },
    ],
    'articles': [
        {
            'title': 'Masa Depan Sistem VRV Industri',
            'slug': 'future-vrv',
            'excerpt': 'Analisis mendalam tentang penghematan energi hingga 40% pada generasi terbaru unit VRV untuk gedung tinggi.',
            'image_path': 'https://images.unsplash.com/photo-1581094794329-c8112a89af12?auto=format&fit=crop&q=80&w=800',
            'category': 'Teknologi',
            'author': 'Ahmad Sudirman',
            'published_at': '2025-01-20',
            'read_time': '5 min',
        },
        {
            'title': 'Standar Udara Higienis di Fasilitas Medis',
            'slug': 'hygienic-air-standards',
            'excerpt': 'Mengapa sistem HVAC konvensional tidak cukup untuk ruang operasi dan isolasi?',
            'image_path': 'https://images.unsplash.com/photo-1516549655169-df83a0774514?auto=format&fit=crop&q=80&w=800',
            'category': 'Kesehatan',
            'author': 'Dr. Linda W.',
            'published_at': '2025-01-18',
            'read_time': '7 min',
        },
        {
            'title': 'Pentingnya Heat Load Calculation',
            'slug': 'heat-load-importance',
            'excerpt': 'Kesalahan perhitungan beban panas seringkali menyebabkan pemborosan biaya listrik hingga 30%.',
            'image_path': 'https://images.unsplash.com/photo-1504384308090-c894fdcc538d?auto=format&fit=crop&q=80&w=800',
            'category': 'Engineering',
            'author': 'Team CSL',
            'published_at': '2025-01-15',
            'read_time': '4 min',
        },
    ],
    'awards': [
        {'year': '2024', 'institution': 'Daikin Indonesia', 'name': 'Million Dollar Award'},
        {'year': '2023', 'institution': 'Daikin Global', 'name': 'Elite Dealer Recognition'},
        {'year': '2022', 'institution': 'Daikin Indonesia', 'name': 'Best After-Sales Service'},
    ],
    'testimonials': [
        {
            'name': 'BUDI SANTOSO',
            'role': 'Chief Engineer',
            'company': 'Sudirman Tower',
            'content': 'Sistem yang dipasang sangat stabil dan efisiensi listriknya terbukti. Pelayanan after-sales mereka benar-benar bisa diandalkan kapan saja.',
            'image': 'https://i.pravatar.cc/150?u=budi',
        },
        {
            'name': 'LINDA KUSUMA',
            'role': 'Property Manager',
            'company': 'Green Residencies',
            'content': 'Kualitas udara di unit hunian kami meningkat drastis. Tim CSL sangat profesional dalam menangani detail teknis yang rumit.',
            'image': 'https://i.pravatar.cc/150?u=linda',
        },
    ],
    'faqs': [
        {
            'q': 'Bagaimana penanganan proyek skala komersial & industri?',
            'a': 'Kami memiliki tim engineer khusus untuk menangani heat-load calculation, desain sistem, hingga supervisi instalasi skala besar.',
            'order': 1,
        },
        {
            'q': 'Apakah produk Daikin resmi dan bergaransi?',
            'a': 'Ya, sebagai Daikin Proshop resmi, semua unit kami memiliki garansi penuh dari Daikin Indonesia dan dukungan suku cadang asli.',
            'order': 2,
        },
        {
            'q': 'Apakah tersedia layanan konsultasi teknis?',
            'a': 'Kami menyediakan konsultasi gratis mulai dari tahap perencanaan arsitektur hingga pemilihan unit yang paling efisien.',
            'order': 3,
        },
    ],
}

SAMPLE_ABOUT = {
    'content': 'Daikin Proshop menghadirkan kenyamanan udara kelas dunia untuk ruko, gedung dan hunian mewah selama lebih dari 3 dekade.',
    'vision': 'Menjadi mitra HVAC paling terpercaya di Indonesia.',
    'projects_count': '500+',
}

SAMPLE_MODELS = {
    'products': Product,
    'portfolios': Portfolio,
    'articles': Article,
    'awards': Award,
    'testimonials': Testimonial,
    'faqs': Faq,
}


def sample_records(kind_key):
    """Sample rows as plain dicts with ids, the way the public API returns them."""
    return [dict(item, id=index) for index, item in enumerate(SAMPLE_CONTENT.get(kind_key, []), start=1)]


def sample_record(kind_key, slug):
    for item in sample_records(kind_key):
        if item.get('slug') == slug:
            return item
    return None


def seed_admin():
    env_password = os.environ.get('ADMIN_PASSWORD') or ''
    username = (os.environ.get('ADMIN_USERNAME') or 'admin').strip()
    email = (os.environ.get('ADMIN_EMAIL') or 'admin@example.com').strip().lower()

    existing_admin = User.query.filter_by(username=username).first()
    if existing_admin:
        # Always sync admin password with env var on startup
        if env_password:
            existing_admin.set_password(env_password)
            db.session.commit()
        return existing_admin

    if not env_password:
        env_password = secrets.token_urlsafe(16)
        current_app.logger.warning(
            'ADMIN_PASSWORD not set. Seeded admin with a random password. '
            'Set ADMIN_PASSWORD and restart to rotate it to a known value.'
        )
    admin = User(username=username, email=email)
    admin.set_password(env_password)
    db.session.add(admin)
    db.session.commit()
    return admin


def seed_sample_content():
    seeded = []
    for kind_key, model in SAMPLE_MODELS.items():
        if db.session.query(model.id).first() is not None:
            continue
        for item in SAMPLE_CONTENT[kind_key]:
            values = dict(item)
            if 'published_at' in values:
                values['published_at'] = parse_date(values['published_at'])
            db.session.add(model(**values))
        seeded.append(kind_key)
    if db.session.query(About.id).first() is None:
        db.session.add(About(**SAMPLE_ABOUT))
        seeded.append('about')
    db.session.commit()
    if seeded:
        current_app.logger.info('Seeded sample content for %s.', ', '.join(seeded))
    return seeded


def seed_database():
    seed_admin()
    if current_app.config.get('SEED_SAMPLE_CONTENT'):
        seed_sample_content()
