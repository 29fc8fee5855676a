"""Test configuration."""

import json
from pathlib import Path

import pytest

from upgrade_migrator.cache import reset_cache
from upgrade_migrator.config import get_config, reset_config

ASSET_BASE = "https://assets.example.com/release"
DIFF_BASE = "https://diffs.example.com/diffs"
RELEASES_URL = "https://diffs.example.com/RELEASES"

SAMPLE_DIFF = r'''diff --git a/RnDiffApp/package.json b/RnDiffApp/package.json
index 1111111..2222222 100644
--- a/RnDiffApp/package.json
+++ b/RnDiffApp/package.json
@@ -11,14 +11,14 @@
   "dependencies": {
     "react": "19.0.0",
-    "react-native": "0.79.0"
+    "react-native": "0.80.0"
   },
   "devDependencies": {
-    "@react-native/babel-preset": "0.79.0",
-    "@react-native/metro-config": "0.79.0",
+    "@react-native/babel-preset": "0.80.0",
+    "@react-native/metro-config": "0.80.0",
     "eslint": "^8.19.0",
-    "prettier": "2.8.8",
+    "prettier": "3.5.0",
     "typescript": "5.0.4"
   },
diff --git a/RnDiffApp/Gemfile b/RnDiffApp/Gemfile
index 3333333..4444444 100644
--- a/RnDiffApp/Gemfile
+++ b/RnDiffApp/Gemfile
@@ -1,3 +1,3 @@
 source 'https://rubygems.org'
-gem 'cocoapods', '>= 1.13'
+gem 'cocoapods', '>= 1.13', '< 1.17'
 gem 'activesupport', '>= 6.1.7.5'
diff --git a/RnDiffApp/jest.config.js b/RnDiffApp/jest.config.js
new file mode 100644
index 0000000..5555555
--- /dev/null
+++ b/RnDiffApp/jest.config.js
@@ -0,0 +1,3 @@
+module.exports = {
+  preset: 'react-native',
+};
diff --git a/RnDiffApp/android/build.gradle b/RnDiffApp/android/build.gradle
index 6666666..7777777 100644
--- a/RnDiffApp/android/build.gradle
+++ b/RnDiffApp/android/build.gradle
@@ -2,6 +2,6 @@ buildscript {
     ext {
         buildToolsVersion = "35.0.0"
         minSdkVersion = 24
-        kotlinVersion = "2.0.21"
+        kotlinVersion = "2.1.20"
     }
 }
diff --git a/RnDiffApp/android/gradle/wrapper/gradle-wrapper.jar b/RnDiffApp/android/gradle/wrapper/gradle-wrapper.jar
index 8888888..9999999 100644
GIT binary patch
delta 1234
zcmV;@1TFiL;{d$X0SnMB

delta 1234
zcmV;@1TFiL;{d$X0SnMB

diff --git a/RnDiffApp/android/gradle/wrapper/gradle-wrapper.properties b/RnDiffApp/android/gradle/wrapper/gradle-wrapper.properties
index aaaaaaa..bbbbbbb 100644
--- a/RnDiffApp/android/gradle/wrapper/gradle-wrapper.properties
+++ b/RnDiffApp/android/gradle/wrapper/gradle-wrapper.properties
@@ -1,4 +1,4 @@
 distributionBase=GRADLE_USER_HOME
 distributionPath=wrapper/dists
-distributionUrl=https\://services.gradle.org/distributions/gradle-8.13-bin.zip
+distributionUrl=https\://services.gradle.org/distributions/gradle-8.14.1-bin.zip
 networkTimeout=10000
diff --git a/RnDiffApp/android/app/src/main/java/com/rndiffapp/MainApplication.kt b/RnDiffApp/android/app/src/main/java/com/rndiffapp/MainApplication.kt
index ccccccc..ddddddd 100644
--- a/RnDiffApp/android/app/src/main/java/com/rndiffapp/MainApplication.kt
+++ b/RnDiffApp/android/app/src/main/java/com/rndiffapp/MainApplication.kt
@@ -4,5 +4,5 @@ class MainApplication : Application(), ReactApplication {
   override fun onCreate() {
     super.onCreate()
-    SoLoader.init(this, OpenSourceMergedSoMapping)
+    loadReactNative(this)
   }
diff --git a/RnDiffApp/App.tsx b/RnDiffApp/App.tsx
index eeeeeee..fffffff 100644
--- a/RnDiffApp/App.tsx
+++ b/RnDiffApp/App.tsx
@@ -1,3 +1,4 @@
-import {SafeAreaView, Text} from 'react-native';
+import {NewAppScreen} from '@react-native/new-app-screen';
+import {View} from 'react-native';
 function App() {
   return (
diff --git a/RnDiffApp/ios/RnDiffApp/LaunchScreen.storyboard b/RnDiffApp/ios/RnDiffApp/LaunchScreen.storyboard
index 1212121..3434343 100644
--- a/RnDiffApp/ios/RnDiffApp/LaunchScreen.storyboard
+++ b/RnDiffApp/ios/RnDiffApp/LaunchScreen.storyboard
@@ -16,1 +16,1 @@
-<label text="RnDiffApp"/>
+<label text="RnDiffApp" opaque="NO"/>
'''

SAMPLE_MANIFEST = {
    "name": "MyApp",
    "version": "0.0.1",
    "dependencies": {
        "react": "19.0.0",
        "react-native": "^0.79.0",
        "react-native-screens": "^4.0.0",
    },
    "devDependencies": {
        "@react-native/babel-preset": "0.79.0",
        "@react-native/metro-config": "0.80.0",
        "prettier": "2.8.8",
    },
}

PROJECT_FILES = {
    "Gemfile": (
        "source 'https://rubygems.org'\n"
        "gem 'cocoapods', '>= 1.13'\n"
        "gem 'activesupport', '>= 6.1.7.5'\n"
    ),
    "android/build.gradle": (
        "buildscript {\n"
        "    ext {\n"
        '        buildToolsVersion = "35.0.0"\n'
        "        minSdkVersion = 24\n"
        '        kotlinVersion = "2.0.21"\n'
        "    }\n"
        "}\n"
    ),
    "android/gradle/wrapper/gradle-wrapper.properties": (
        "distributionBase=GRADLE_USER_HOME\n"
        "distributionPath=wrapper/dists\n"
        "distributionUrl=https\\://services.gradle.org/distributions/gradle-8.13-bin.zip\n"
        "networkTimeout=10000\n"
    ),
    "android/app/src/main/java/com/rndiffapp/MainApplication.kt": (
        "package com.rndiffapp\n"
        "\n"
        "class MainApplication : Application(), ReactApplication {\n"
        "  override fun onCreate() {\n"
        "    super.onCreate()\n"
        "    SoLoader.init(this, OpenSourceMergedSoMapping)\n"
        "  }\n"
        "}\n"
    ),
    # Locally customized: no longer matches the release baseline
    "App.tsx": (
        "import {SafeAreaView, Text, Button} from 'react-native';\n"
        "function App() {\n"
        "  return (\n"
        "    <SafeAreaView><Text>Hello</Text></SafeAreaView>\n"
        "  );\n"
        "}\n"
    ),
}

OLD_WRAPPER_JAR = b"PK\x03\x04old-wrapper"
NEW_WRAPPER_JAR = b"PK\x03\x04new-wrapper-bytes"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory):
    """Point config and cache at throwaway locations."""
    config_dir = tmp_path_factory.mktemp("config")
    config_file = config_dir / "upgrade_migrator.toml"
    config_file.write_text(
        f"""
[diff]
base_url = "{DIFF_BASE}"
release_base_url = "{ASSET_BASE}"
releases_url = "{RELEASES_URL}"

[http]
max_retries = 0
base_delay = 0.0

[cache]
directory = "{(config_dir / 'cache').as_posix()}"
""",
        encoding="utf-8",
    )
    
    reset_config()
    reset_cache()
    config = get_config(config_file)
    
    yield config
    
    reset_config()
    reset_cache()


@pytest.fixture
def sample_diff() -> str:
    """A multi-file release diff."""
    return SAMPLE_DIFF


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """A project tree at the 0.79.0 baseline, with App.tsx customized."""
    project = tmp_path / "MyApp"
    project.mkdir()
    
    (project / "package.json").write_text(json.dumps(SAMPLE_MANIFEST, indent=2) + "\n", encoding="utf-8")
    
    for relative, content in PROJECT_FILES.items():
        path = project / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    
    jar = project / "android/gradle/wrapper/gradle-wrapper.jar"
    jar.write_bytes(OLD_WRAPPER_JAR)
    
    return project
