"""Android Studio boilerplate templates."""

from typing import Any

from jinja2 import BaseLoader, Environment, StrictUndefined

MANIFEST = """\
<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android">

    <application
        android:allowBackup="true"
        android:icon="@mipmap/ic_launcher"
        android:label="@string/app_name"
        android:roundIcon="@mipmap/ic_launcher_round"
        android:supportsRtl="true"
        android:theme="@style/Theme.AppCompat.Light.DarkActionBar">
        <activity
            android:name=".{{ activity }}"
            android:exported="true">
            <intent-filter>
                <action android:name="android.intent.action.MAIN" />
                <category android:name="android.intent.category.LAUNCHER" />
            </intent-filter>
        </activity>
    </application>

</manifest>
"""

ROOT_GRADLE = """\
// Top-level build file where you can add configuration options common to all sub-projects/modules.
plugins {
    id 'com.android.application' version '{{ agp_version }}' apply false
    id 'org.jetbrains.kotlin.android' version '{{ kotlin_version }}' apply false
}

tasks.register('clean', Delete) {
    delete rootProject.layout.buildDirectory
}
"""

SETTINGS_GRADLE = """\
pluginManagement {
    repositories {
        google()
        mavenCentral()
        gradlePluginPortal()
    }
}
dependencyResolutionManagement {
    repositoriesMode.set(RepositoriesMode.FAIL_ON_PROJECT_REPOS)
    repositories {
        google()
        mavenCentral()
    }
}

rootProject.name = "{{ project_name }}"
include ':app'
"""

APP_GRADLE = """\
plugins {
    id 'com.android.application'
    id 'org.jetbrains.kotlin.android'
}

android {
    namespace '{{ package }}'
    compileSdk {{ compile_sdk }}

    defaultConfig {
        applicationId '{{ package }}'
        minSdk {{ min_sdk }}
        targetSdk {{ compile_sdk }}
        versionCode 1
        versionName "1.0"
    }

    buildTypes {
        release {
            minifyEnabled false
            proguardFiles getDefaultProguardFile('proguard-android-optimize.txt'), 'proguard-rules.pro'
        }
    }
    compileOptions {
        sourceCompatibility JavaVersion.VERSION_1_8
        targetCompatibility JavaVersion.VERSION_1_8
    }
    kotlinOptions {
        jvmTarget = '1.8'
    }
}

dependencies {
    implementation 'androidx.core:core-ktx:1.12.0'
    implementation 'androidx.appcompat:appcompat:1.6.1'
    implementation 'com.google.android.material:material:1.10.0'
}
"""

STRINGS = """\
<?xml version="1.0" encoding="utf-8"?>
<resources>
    <string name="app_name">{{ app_name | android_string }}</string>
</resources>
"""

TEMPLATES = {
    "manifest": MANIFEST,
    "root_gradle": ROOT_GRADLE,
    "settings_gradle": SETTINGS_GRADLE,
    "app_gradle": APP_GRADLE,
    "strings": STRINGS,
}

DEFAULTS: dict[str, Any] = {
    "activity": "MainActivity",
    "agp_version": "8.2.0",
    "kotlin_version": "1.9.0",
    "compile_sdk": 34,
    "min_sdk": 24,
}


def android_string(value: str) -> str:
    """Escape text for a <string> resource."""
    escaped = (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace('"', '\\"')
    )
    if escaped[:1] in ("@", "?"):
        escaped = f"\\{escaped}"
    return escaped


class TemplateRenderer:
    """Renders the boilerplate files from in-module template sources."""

    def __init__(self) -> None:
        self.env = Environment(
            loader=BaseLoader(),
            autoescape=False,  # generating build files, not HTML
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["android_string"] = android_string
        self._templates = {name: self.env.from_string(source) for name, source in TEMPLATES.items()}

    def render(self, name: str, **context: Any) -> str:
        """Render one named template; unknown names raise KeyError."""
        return self._templates[name].render(**{**DEFAULTS, **context})
